"""Pod image validation: admission webhooks, reconcilers, an in-memory object store and configuration."""

__version__ = "0.1.0"