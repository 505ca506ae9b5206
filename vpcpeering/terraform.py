"""A small model of a Terraform stack that renders to Terraform JSON configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ElementKind(Enum):
    """Whether an element is a managed resource or a data source."""

    RESOURCE = "resource"
    DATA = "data"


def _render(value: Any) -> Any:
    """Turn a configuration value into plain JSON-ready data.

    Providers and elements become their fully qualified names; ``None``
    entries of mappings are dropped.
    """
    if isinstance(value, (TerraformProvider, TerraformElement)):
        return value.fqn()
    if isinstance(value, dict):
        return {str(k): _render(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [_render(item) for item in value]
    return value


def _deep_merge(target: dict[str, Any], source: dict[str, Any]) -> None:
    for key, value in source.items():
        existing = target.get(key)
        if isinstance(existing, dict) and isinstance(value, dict):
            _deep_merge(existing, value)
        else:
            target[key] = value


@dataclass(eq=False)
class TerraformProvider:
    """A provider block; equality is identity, as for any construct."""

    provider_type: str
    name: str
    alias: str | None = None
    config: dict[str, Any] = field(default_factory=dict)

    def fqn(self) -> str:
        """The reference used in a resource's ``provider`` argument."""
        return f"{self.provider_type}.{self.alias}" if self.alias else self.provider_type

    def _body(self) -> dict[str, Any]:
        body = _render(self.config)
        if self.alias:
            body["alias"] = self.alias
        return body


@dataclass(eq=False)
class TerraformElement:
    """A resource or data source block in a stack."""

    kind: ElementKind
    element_type: str
    name: str
    config: dict[str, Any] = field(default_factory=dict)
    overrides: dict[str, Any] = field(default_factory=dict)

    def fqn(self) -> str:
        """The address of the element within the configuration."""
        address = f"{self.element_type}.{self.name}"
        return f"data.{address}" if self.kind is ElementKind.DATA else address

    def attr(self, name: str) -> str:
        """An interpolation expression referring to attribute ``name``."""
        return "${" + f"{self.fqn()}.{name}" + "}"

    def add_override(self, path: str, value: Any) -> None:
        """Set a raw value at a dotted ``path`` in the rendered block."""
        parts = path.split(".")
        if not path or not all(parts):
            raise ValueError(f"invalid override path: {path!r}")
        *parents, leaf = parts
        node = self.overrides
        for part in parents:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        node[leaf] = value

    def to_json(self) -> dict[str, Any]:
        """The rendered block body, overrides applied on top of the configuration."""
        body = _render(self.config)
        _deep_merge(body, _render(self.overrides))
        return body


class TerraformStack:
    """A named collection of variables, providers, resources, data sources and outputs."""

    def __init__(self, stack_id: str) -> None:
        self.stack_id = stack_id
        self._ids: set[str] = set()
        self._variables: dict[str, dict[str, Any]] = {}
        self._providers: list[TerraformProvider] = []
        self._elements: list[TerraformElement] = []
        self._outputs: dict[str, Any] = {}

    def _claim(self, name: str) -> None:
        if not name:
            raise ValueError("construct id must not be empty")
        if name in self._ids:
            raise ValueError(f"duplicate construct id {name!r} in stack {self.stack_id!r}")
        self._ids.add(name)

    def add_variable(
        self,
        name: str,
        variable_type: str,
        description: str | None = None,
        default: Any = None,
    ) -> str:
        """Declare an input variable and return the expression referring to it."""
        self._claim(name)
        self._variables[name] = _render(
            {"type": variable_type, "description": description, "default": default}
        )
        return "${var." + name + "}"

    def add_provider(
        self,
        name: str,
        provider_type: str,
        alias: str | None = None,
        config: dict[str, Any] | None = None,
    ) -> TerraformProvider:
        """Add a provider block; two providers of a type may not share an alias."""
        if any(
            p.provider_type == provider_type and p.alias == alias for p in self._providers
        ):
            raise ValueError(f"duplicate provider {provider_type!r} with alias {alias!r}")
        self._claim(name)
        provider = TerraformProvider(provider_type, name, alias, dict(config or {}))
        self._providers.append(provider)
        return provider

    def _add_element(
        self, kind: ElementKind, name: str, element_type: str, config: dict[str, Any] | None
    ) -> TerraformElement:
        self._claim(name)
        element = TerraformElement(kind, element_type, name, dict(config or {}))
        self._elements.append(element)
        return element

    def add_resource(
        self, name: str, resource_type: str, config: dict[str, Any] | None = None
    ) -> TerraformElement:
        """Add a managed resource."""
        return self._add_element(ElementKind.RESOURCE, name, resource_type, config)

    def add_data_source(
        self, name: str, data_type: str, config: dict[str, Any] | None = None
    ) -> TerraformElement:
        """Add a data source."""
        return self._add_element(ElementKind.DATA, name, data_type, config)

    def add_output(self, name: str, value: Any) -> None:
        """Add an output exposing ``value``."""
        self._claim(name)
        self._outputs[name] = value

    def to_dict(self) -> dict[str, Any]:
        """Render the whole stack as a Terraform JSON document."""
        document: dict[str, Any] = {}
        if self._variables:
            document["variable"] = {k: dict(v) for k, v in self._variables.items()}
        if self._providers:
            providers: dict[str, list[dict[str, Any]]] = {}
            for provider in self._providers:
                providers.setdefault(provider.provider_type, []).append(provider._body())
            document["provider"] = providers
        for kind in ElementKind:
            section: dict[str, dict[str, Any]] = {}
            for element in self._elements:
                if element.kind is kind:
                    section.setdefault(element.element_type, {})[element.name] = (
                        element.to_json()
                    )
            if section:
                document[kind.value] = section
        if self._outputs:
            document["output"] = {
                name: {"value": _render(value)} for name, value in self._outputs.items()
            }
        return document