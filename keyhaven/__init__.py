"""keyhaven - client-side encrypted credential vault."""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
