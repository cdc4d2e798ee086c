"""
Model artifact acquisition from the HuggingFace Hub.

hf_hub_download reuses the local cache when the file is already present,
so repeated backend construction does not re-download.
"""

import logging
from pathlib import Path
from typing import Optional

from huggingface_hub import hf_hub_download
from huggingface_hub.errors import (
    EntryNotFoundError,
    LocalEntryNotFoundError,
    RepositoryNotFoundError,
    RevisionNotFoundError,
)
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception,
    before_sleep_log,
)

from codepilot.config import get_retry_attempts, get_retry_min_wait, get_retry_max_wait
from codepilot.errors import ModelAcquisitionError

logger = logging.getLogger(__name__)


def is_retryable_error(exception: BaseException) -> bool:
    """
    Determine if a download failure is transient.

    Missing repositories, revisions and files are permanent. A cache miss
    while the Hub is unreachable, connection errors, timeouts and gateway
    errors are retried.
    """
    if isinstance(exception, LocalEntryNotFoundError):
        return True
    if isinstance(exception, (RepositoryNotFoundError, RevisionNotFoundError, EntryNotFoundError)):
        return False
    error_msg = str(exception).lower()
    retryable_patterns = [
        "connection",
        "timeout",
        "timed out",
        "502",
        "503",
        "504",
    ]
    return any(pattern in error_msg for pattern in retryable_patterns)


def obtain_model(
    repository: str,
    name: str,
    revision: Optional[str] = None,
    token: Optional[str] = None,
) -> Path:
    """
    Return the local path of `name` from `repository`, downloading if needed.

    Args:
        repository: HF Hub repo id (e.g. "stabilityai/stable-code-3b")
        name: File name inside the repository (e.g. a .gguf file)
        revision: Optional branch, tag or commit
        token: Optional HF token for gated/private repositories

    Raises:
        ModelAcquisitionError: if the file cannot be located or downloaded
    """

    @retry(
        stop=stop_after_attempt(get_retry_attempts()),
        wait=wait_exponential(multiplier=2, min=get_retry_min_wait(), max=get_retry_max_wait()),
        retry=retry_if_exception(is_retryable_error),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    def download_with_retry() -> str:
        return hf_hub_download(
            repo_id=repository,
            filename=name,
            revision=revision,
            token=token,
        )

    logger.info("Obtaining %s from %s", name, repository)
    try:
        local_path = download_with_retry()
    except Exception as e:
        raise ModelAcquisitionError(
            f"Could not obtain {name} from {repository}: {e}"
        ) from e

    logger.info("Model available at %s", local_path)
    return Path(local_path)
