"""
Base service class.

Services share the caller's AsyncSession. Writes that must land together
run under the transaction decorator: commit on success, rollback and
re-raise on any error. Log messages keep dynamic values out of the format
string; they go in as positional arguments or in extra.
"""

import functools
import inspect
import time
from collections.abc import Callable
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from upline.models.account import Account
from upline.utils.exceptions import AccountNotFoundError, ReferralEngineError

T = TypeVar("T")

# Call arguments copied into operation logs
CONTEXT_ARGUMENTS = (
    "account_id",
    "beneficiary_id",
    "request_id",
    "event_key",
    "payment_id",
    "status",
)


class BaseService:
    """Session holder with a logger bound to the service name."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize base service.

        Args:
            session: Async database session
        """
        self.session = session
        self.logger = logger.bind(service=self.__class__.__name__)

    async def commit(self) -> None:
        """Commit current transaction."""
        await self.session.commit()

    async def rollback(self) -> None:
        """Rollback current transaction."""
        await self.session.rollback()

    async def safe_rollback(self) -> None:
        """Rollback, logging a failure instead of masking the original error."""
        try:
            await self.session.rollback()
        except Exception as rollback_error:
            self.logger.error("Rollback failed: {}", rollback_error)

    async def require_account(self, account_id: str) -> Account:
        """
        Load an account.

        Raises:
            AccountNotFoundError: Unknown account id
        """
        account = await self.session.get(Account, account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account


def operation_context(
    signature: inspect.Signature, args: tuple, kwargs: dict[str, Any]
) -> dict[str, str]:
    """
    Pick the identifying arguments of a service call.

    Args:
        signature: Signature of the undecorated method (self included)
        args: Positional arguments without self
        kwargs: Keyword arguments

    Returns:
        CONTEXT_ARGUMENTS present in the call, as strings
    """
    try:
        bound = signature.bind_partial(None, *args, **kwargs)
    except TypeError:
        return {}
    return {
        name: str(bound.arguments[name])
        for name in CONTEXT_ARGUMENTS
        if bound.arguments.get(name) is not None
    }


def transaction(func: Callable[..., T]) -> Callable[..., T]:
    """
    Run a service method as one transaction.

    Business rejections (ReferralEngineError) are logged as warnings,
    anything else as an error with traceback. The error is re-raised after
    rollback in both cases.

    Usage:
        @transaction
        async def set_status(self, account_id: str, status: str) -> Account:
            ...
    """
    signature = inspect.signature(func)

    @functools.wraps(func)
    async def wrapper(self: BaseService, *args: Any, **kwargs: Any) -> Any:
        try:
            result = await func(self, *args, **kwargs)
            await self.commit()
            return result
        except ReferralEngineError as e:
            await self.safe_rollback()
            self.logger.warning(
                "{} rejected: {}",
                func.__name__,
                e,
                extra=operation_context(signature, args, kwargs),
            )
            raise
        except Exception as e:
            await self.safe_rollback()
            self.logger.opt(exception=e).error(
                "{} failed, transaction rolled back",
                func.__name__,
                extra=operation_context(signature, args, kwargs),
            )
            raise

    return wrapper


def log_operation(func: Callable[..., T]) -> Callable[..., T]:
    """
    Log an admin-facing operation with its account/request context and timing.

    Usage:
        @log_operation
        @transaction
        async def reject_withdrawal(self, request_id: int, note=None):
            ...
    """
    signature = inspect.signature(func)

    @functools.wraps(func)
    async def wrapper(self: BaseService, *args: Any, **kwargs: Any) -> Any:
        context = operation_context(signature, args, kwargs)
        start_time = time.monotonic()

        self.logger.debug("Starting {}", func.__name__, extra=context)

        try:
            result = await func(self, *args, **kwargs)
        except Exception as e:
            self.logger.error(
                "{} failed after {:.3f}s: {}",
                func.__name__,
                time.monotonic() - start_time,
                e,
                extra=context,
            )
            raise

        self.logger.info(
            "{} completed in {:.3f}s",
            func.__name__,
            time.monotonic() - start_time,
            extra=context,
        )
        return result

    return wrapper
