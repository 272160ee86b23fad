from loguru import logger

from supplier_orders.domain.interfaces import ISupplierDirectory
from supplier_orders.domain.supplier import Identity
from supplier_orders.infrastructure.order_store import StorageError


class AuthenticationRequired(Exception):
    """Raised when neither an identity nor a supplier name was supplied."""


class OwnerNotFound(Exception):
    """Raised when an identity maps to no supplier and there is no fallback name."""


def resolve_owner(
    identity: Identity | None,
    supplier_name: str | None,
    directory: ISupplierDirectory,
) -> str:
    """Return the supplier key whose orders should be listed.

    A supplier found for ``identity`` always wins; ``supplier_name`` is only a
    fallback for requests without a usable identity.

    Raises:
        AuthenticationRequired: no identity and no supplier name.
        OwnerNotFound: the identity has no supplier record and no supplier name.
    """
    fallback = (supplier_name or "").strip() or None

    if identity is None:
        if fallback:
            logger.info(f"No authenticated user, using supplier name from parameter: {fallback}")
            return fallback
        raise AuthenticationRequired(
            "Authentication required - no user or supplier name provided"
        )

    try:
        supplier = directory.find_by_email(identity.email)
    except StorageError as exc:
        logger.warning(f"Supplier lookup failed for {identity.email}: {exc}")
        supplier = None

    if supplier is not None:
        logger.debug(f"Resolved supplier {supplier.username} for {identity.email}")
        return supplier.username

    if fallback:
        logger.info(f"Supplier not found for {identity.email}, using parameter: {fallback}")
        return fallback
    raise OwnerNotFound(f"Supplier not found for email: {identity.email}")
