"""Typed failures raised by the access control core.

Every error carries the raw values needed to render it (caller, selector,
name, expected kind) in ``details()``; ``str(error)`` renders the message
template from :mod:`registry.messages`.
"""

from __future__ import annotations

from typing import Any, Dict

from registry.messages import ErrorMessages, format_felt


class AccessControlError(PermissionError):
    """Base class for every access control failure."""

    template: str = ""
    kind: str = "access_control"

    def __init__(self, **details: Any) -> None:
        self._details = details
        rendered = {key: format_felt(value) for key, value in details.items()}
        super().__init__(self.template.format(**rendered))

    def details(self) -> Dict[str, Any]:
        return dict(self._details)

    def __getattr__(self, name: str) -> Any:
        details = self.__dict__.get("_details") or {}
        if name in details:
            return details[name]
        raise AttributeError(name)


class NamespaceAlreadyRegistered(AccessControlError):
    template = ErrorMessages.NAMESPACE_ALREADY_REGISTERED
    kind = "namespace_already_registered"

    def __init__(self, namespace: str) -> None:
        super().__init__(namespace=namespace)


class NamespaceNotRegistered(AccessControlError):
    template = ErrorMessages.NAMESPACE_NOT_REGISTERED
    kind = "namespace_not_registered"

    def __init__(self, namespace: Any) -> None:
        super().__init__(namespace=namespace)


class NoNamespaceWriteAccess(AccessControlError):
    template = ErrorMessages.NO_NAMESPACE_WRITE_ACCESS
    kind = "no_namespace_write_access"

    def __init__(self, caller: int, selector: int, name: str) -> None:
        super().__init__(caller=caller, selector=selector, name=name)


class ModelAlreadyRegistered(AccessControlError):
    template = ErrorMessages.MODEL_ALREADY_REGISTERED
    kind = "model_already_registered"

    def __init__(self, namespace: str, name: str) -> None:
        super().__init__(namespace=namespace, name=name)


class ResourceNotRegistered(AccessControlError):
    template = ErrorMessages.RESOURCE_NOT_REGISTERED
    kind = "resource_not_registered"

    def __init__(self, selector: int) -> None:
        super().__init__(selector=selector)


class NotOwner(AccessControlError):
    template = ErrorMessages.NOT_OWNER
    kind = "not_owner"

    def __init__(self, caller: int, selector: int) -> None:
        super().__init__(caller=caller, selector=selector)


class NotOwnerUpgrade(AccessControlError):
    template = ErrorMessages.NOT_OWNER_UPGRADE
    kind = "not_owner_upgrade"

    def __init__(self, caller: int, selector: int) -> None:
        super().__init__(caller=caller, selector=selector)


class CallerNotAccount(AccessControlError):
    template = ErrorMessages.CALLER_NOT_ACCOUNT
    kind = "caller_not_account"

    def __init__(self, caller: int) -> None:
        super().__init__(caller=caller)


class InvalidResourceSelector(AccessControlError):
    template = ErrorMessages.INVALID_RESOURCE_SELECTOR
    kind = "invalid_resource_selector"

    def __init__(self, selector: Any) -> None:
        super().__init__(selector=selector)


class ResourceConflict(AccessControlError):
    template = ErrorMessages.RESOURCE_CONFLICT
    kind = "resource_conflict"

    def __init__(self, name: str, expected_kind: str) -> None:
        super().__init__(name=name, expected_kind=expected_kind)


class NoModelWriteAccess(AccessControlError):
    template = ErrorMessages.NO_MODEL_WRITE_ACCESS
    kind = "no_model_write_access"

    def __init__(self, tag: str, caller: int) -> None:
        super().__init__(tag=tag, caller=caller)


class DeleteEntityMember(AccessControlError):
    """Deleting a single member of an entity is never allowed."""

    template = ErrorMessages.DELETE_ENTITY_MEMBER
    kind = "delete_entity_member"

    def __init__(self) -> None:
        super().__init__()


class InvalidName(ValueError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(ErrorMessages.INVALID_NAME.format(name=name))


class InvalidTag(ValueError):
    def __init__(self, tag: str) -> None:
        self.tag = tag
        super().__init__(ErrorMessages.INVALID_TAG.format(tag=tag))


__all__ = [
    "AccessControlError",
    "CallerNotAccount",
    "DeleteEntityMember",
    "InvalidName",
    "InvalidResourceSelector",
    "InvalidTag",
    "ModelAlreadyRegistered",
    "NamespaceAlreadyRegistered",
    "NamespaceNotRegistered",
    "NoModelWriteAccess",
    "NoNamespaceWriteAccess",
    "NotOwner",
    "NotOwnerUpgrade",
    "ResourceConflict",
    "ResourceNotRegistered",
]
