"""Mapping between elements, logical index names and physical index names."""

from __future__ import annotations

from typing import Protocol

from elementsearch.config import get_settings
from elementsearch.exceptions import AliasNotFound, InvalidInput
from elementsearch.models.element import ElementKind, ElementType
from elementsearch.schemas.endpoint import EndpointConfig

INDEX_ASSET = ElementKind.ASSET.value
INDEX_ASSET_FOLDER = ElementKind.ASSET_FOLDER.value
INDEX_OBJECT_FOLDER = ElementKind.OBJECT_FOLDER.value

NAME_SEPARATOR = "__"
ODD_SUFFIX = "-odd"
EVEN_SUFFIX = "-even"


class AliasLookup(Protocol):
    def find_index_name_by_alias(self, alias: str) -> str | None: ...


def is_physical_name(name: str) -> bool:
    return name.endswith(ODD_SUFFIX) or name.endswith(EVEN_SUFFIX)


def even_name(logical_name: str) -> str:
    return f"{logical_name}{EVEN_SUFFIX}"


def odd_name(logical_name: str) -> str:
    return f"{logical_name}{ODD_SUFFIX}"


def logical_name_of(physical_name: str) -> str:
    """Strip the odd/even suffix from a physical index name."""
    if physical_name.endswith(ODD_SUFFIX):
        return physical_name[: -len(ODD_SUFFIX)]
    if physical_name.endswith(EVEN_SUFFIX):
        return physical_name[: -len(EVEN_SUFFIX)]
    raise InvalidInput(f"{physical_name!r} is not an odd/even physical index name")


def inactive_sibling(physical_name: str) -> str:
    """Toggle the odd/even suffix of a physical index name."""
    if physical_name.endswith(ODD_SUFFIX):
        return even_name(logical_name_of(physical_name))
    return odd_name(logical_name_of(physical_name))


def type_tag_for(value: object) -> str:
    """Derive the index type tag from an element kind, an element or a raw tag."""
    if isinstance(value, ElementKind):
        if value is ElementKind.OBJECT:
            raise InvalidInput("An object kind needs its class name; pass the element instead")
        return value.value
    if isinstance(value, str):
        if not value.strip():
            raise InvalidInput("Index type tag must not be empty")
        return value

    kind = getattr(value, "kind", None)
    if not isinstance(kind, ElementKind):
        raise InvalidInput(f"The given value must either be a string or an element, {type(value).__name__} given")

    if kind is ElementKind.OBJECT:
        class_name = getattr(value, "class_name", None)
        if not class_name:
            raise InvalidInput(f"Object {getattr(value, 'id', '?')} has no class name")
        return class_name.lower()
    return kind.value


class ElementResolver:
    """Resolves logical names for elements and the live physical index behind them."""

    def __init__(self, persistence: AliasLookup, *, prefix: str | None = None) -> None:
        self._persistence = persistence
        self._prefix = prefix or get_settings().index_name_prefix

    @property
    def prefix(self) -> str:
        return self._prefix

    def resolve_logical_name(self, value: object, endpoint_name: str) -> str:
        """Return ``{prefix}__{endpoint}__{typeTag}`` for an element or raw type tag."""
        return NAME_SEPARATOR.join((self._prefix, endpoint_name, type_tag_for(value)))

    def resolve_physical_name(self, logical_name: str) -> str:
        """Return the physical index the alias currently points at."""
        physical_name = self._persistence.find_index_name_by_alias(logical_name)
        if not physical_name:
            raise AliasNotFound(f'No physical index found for alias "{logical_name}"')
        return physical_name

    def endpoint_pattern(self, endpoint_name: str) -> str:
        """Wildcard matching every logical and physical index of one endpoint."""
        return f"{self._prefix}{NAME_SEPARATOR}{endpoint_name}{NAME_SEPARATOR}*"

    def logical_names_for_type(self, config: EndpointConfig, element_type: ElementType | str) -> list[str]:
        element_type = ElementType(element_type)
        if element_type is ElementType.ASSET:
            if not config.asset_indexing_enabled:
                return []
            tags = [INDEX_ASSET, INDEX_ASSET_FOLDER]
        else:
            if not config.object_indexing_enabled:
                return []
            tags = [INDEX_OBJECT_FOLDER, *(name.lower() for name in config.object_class_names)]
        return [self.resolve_logical_name(tag, config.name) for tag in dict.fromkeys(tags)]

    def all_logical_names(self, config: EndpointConfig) -> list[str]:
        """Return every logical index the endpoint configuration enables."""
        return [
            *self.logical_names_for_type(config, ElementType.ASSET),
            *self.logical_names_for_type(config, ElementType.OBJECT),
        ]
