"""
Call-boundary fault barrier.

Library errors (BicExporterError subclasses) cross the boundary unchanged.
Anything else escaping an extraction call is an internal fault: it is
logged with its traceback and re-raised as ExtractionFault so callers only
ever see the library's error type.
"""

import logging
from concurrent.futures import ProcessPoolExecutor, TimeoutError as FuturesTimeoutError
from concurrent.futures.process import BrokenProcessPool
from functools import wraps
from typing import Any, Callable, Optional

from bic_exporter.utils.validation import (
    BicExporterError,
    ExtractionFault,
    ProcessingTimeoutError,
)

logger = logging.getLogger(__name__)


def guarded_call(func: Callable) -> Callable:
    """
    Decorator converting unexpected exceptions into ExtractionFault.

    KeyboardInterrupt and SystemExit are not intercepted.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except BicExporterError:
            raise
        except Exception as e:
            logger.error(f"Unexpected fault in {func.__name__}: {e}", exc_info=True)
            raise ExtractionFault(f"Internal error in {func.__name__}: {type(e).__name__}: {e}") from e

    return wrapper


def _terminate_workers(executor: ProcessPoolExecutor) -> None:
    """Kill worker processes still running after a timeout"""
    processes = getattr(executor, '_processes', None) or {}
    for process in list(processes.values()):
        if process.is_alive():
            process.terminate()


def run_isolated(func: Callable, *args, timeout: Optional[float] = None, **kwargs) -> Any:
    """
    Run ``func(*args, **kwargs)`` in a one-shot worker process.

    ``func``, its arguments and its result must be picklable. A worker that
    dies (segfault, os._exit, out-of-memory kill) cannot take the caller
    down with it.

    Raises:
        ExtractionFault: The worker process terminated abnormally
        ProcessingTimeoutError: No result within ``timeout`` seconds
        BicExporterError: Library errors raised in the worker, unchanged
    """
    executor = ProcessPoolExecutor(max_workers=1)
    timed_out = False
    try:
        future = executor.submit(func, *args, **kwargs)
        return future.result(timeout=timeout)
    except FuturesTimeoutError as e:
        timed_out = True
        logger.error(f"{getattr(func, '__name__', func)} timed out after {timeout}s")
        raise ProcessingTimeoutError(f"Processing timed out after {timeout} seconds") from e
    except BrokenProcessPool as e:
        logger.error(f"Worker process for {getattr(func, '__name__', func)} terminated abruptly")
        raise ExtractionFault("Extraction worker terminated abnormally") from e
    except BicExporterError:
        raise
    except Exception as e:
        logger.error(f"Unexpected fault in isolated {getattr(func, '__name__', func)}: {e}", exc_info=True)
        raise ExtractionFault(f"Internal error: {type(e).__name__}: {e}") from e
    finally:
        if timed_out:
            _terminate_workers(executor)
            executor.shutdown(wait=False, cancel_futures=True)
        else:
            executor.shutdown(wait=True)
