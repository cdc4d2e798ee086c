"""
codepilot - inference backends for a code-completion assistant.

A worker dispatches completion and generation requests to interchangeable
backends that share the TransformerBackend contract.
"""

__version__ = "0.1.0"
