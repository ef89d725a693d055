import random
import time
from functools import wraps

from core.logger import Logger

logger = Logger(__name__)


def retry_with_exponential_backoff(
    errors,
    initial_delay: float = 1,
    exponential_base: float = 2,
    jitter: bool = True,
    max_retries: int = 5,
    sleep=None,
):
    """
    Parameterized decorator:
      @retry_with_exponential_backoff((SomeError, OtherError), max_retries=5)
      def fn(...): ...

    max_retries=0 calls the function exactly once. The wrapped function may
    also be given ``max_retries=`` at call time to override the default.
    """
    if not isinstance(errors, tuple):
        errors = (errors,)

    def decorator(func):
        name = getattr(func, "__qualname__", repr(func))

        @wraps(func)
        def wrapper(*args, max_retries: int = max_retries, **kwargs):
            pause = sleep or time.sleep
            delay = initial_delay
            attempts = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except errors as e:
                    attempts += 1
                    if attempts > max_retries:
                        if max_retries:
                            logger.error(f"{name}: giving up after {attempts} attempts: {e}")
                        raise
                    sleep_for = delay * (1 + random.random() if jitter else 1)
                    logger.warning(
                        f"{name}: {e} - retry {attempts} of {max_retries} in {sleep_for:.2f}s"
                    )
                    pause(sleep_for)
                    delay *= exponential_base

        return wrapper

    return decorator
