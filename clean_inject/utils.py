import functools
import warnings


def send_deprecation_warning(message: str):
    warnings.warn(message, category=DeprecationWarning, stacklevel=3)


def deprecated(custom_message: str | None = None):
    """Marks a function as deprecated, emitting a DeprecationWarning on every call."""

    def decorator(func):
        @functools.wraps(func)
        def new_func(*args, **kwargs):
            send_deprecation_warning(custom_message or f"Call to deprecated function {func.__name__}.")
            return func(*args, **kwargs)

        return new_func

    return decorator
