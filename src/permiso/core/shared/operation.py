"""Failure logging for orchestration and engine operations.

``@operation`` wraps an async function whose first argument is the
RequestContext and which returns a Result. Failed results are logged with the
operation name, tenant id, error code and every entity id among the call
arguments, then returned unchanged.
"""

import functools
import inspect
import logging
from typing import Any, Dict

from ..exceptions import StorageError
from ..result import Result

logger = logging.getLogger(__name__)


def _entity_ids(bound: inspect.BoundArguments) -> Dict[str, Any]:
    return {
        name: value
        for name, value in bound.arguments.items()
        if (name == "id" or name.endswith("_id") or name == "id_prefix") and isinstance(value, str)
    }


def operation(name: str):
    """Decorate an operation so its failures are logged with context."""

    def decorator(func):
        signature = inspect.signature(func)

        @functools.wraps(func)
        async def wrapper(ctx, *args, **kwargs) -> Result:
            if ctx is None:
                raise TypeError(f"{name} requires a RequestContext")

            result = await func(ctx, *args, **kwargs)

            if not result.success:
                bound = signature.bind(ctx, *args, **kwargs)
                entity_ids = _entity_ids(bound)
                extra = {
                    "operation": name,
                    "tenant_id": ctx.tenant_id or entity_ids.get("tenant_id"),
                    "request_id": ctx.request_id,
                    "error_code": result.error.error_code,
                    "entity_ids": entity_ids,
                }
                level = logging.ERROR if isinstance(result.error, StorageError) else logging.WARNING
                logger.log(
                    level,
                    f"{name} failed [{result.error.error_code}]: {result.error.message}",
                    extra=extra,
                )
            return result

        wrapper.operation_name = name
        return wrapper

    return decorator
