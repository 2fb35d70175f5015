"""Centralized user-facing error messages for registry-related operations."""


class ErrorMessages:
    NAMESPACE_ALREADY_REGISTERED = "Namespace `{namespace}` is already registered."
    NAMESPACE_NOT_REGISTERED = "Namespace `{namespace}` is not registered."
    NO_NAMESPACE_WRITE_ACCESS = (
        "Caller `{caller}` has no write access on namespace `{name}`."
    )
    MODEL_ALREADY_REGISTERED = "Resource `{namespace}-{name}` is already registered."
    RESOURCE_NOT_REGISTERED = "Resource `{selector}` is not registered."
    NOT_OWNER = "Caller `{caller}` is not the owner of the resource `{selector}`."
    NOT_OWNER_UPGRADE = (
        "Caller `{caller}` cannot upgrade the resource `{selector}` (not owner)."
    )
    CALLER_NOT_ACCOUNT = "Caller `{caller}` is not an account."
    INVALID_RESOURCE_SELECTOR = "Invalid resource selector `{selector}`."
    RESOURCE_CONFLICT = "Resource `{name}` is registered but not as {expected_kind}."
    NO_MODEL_WRITE_ACCESS = "Caller `{caller}` has no write access on model `{tag}`."
    DELETE_ENTITY_MEMBER = "Cannot delete an entity member."

    INVALID_NAME = (
        "Invalid name `{name}`: only ASCII letters, digits and underscores are allowed."
    )
    INVALID_TAG = "Invalid tag `{tag}`: expected `namespace-name`."


def format_felt(value: object) -> str:
    """Render selectors and caller addresses the way messages show them."""

    if isinstance(value, int) and not isinstance(value, bool):
        return hex(value)
    return str(value)


__all__ = ["ErrorMessages", "format_felt"]
