"""Definition reference strategies.

An instance can name its definition in two ways: the first-class
``definition_ref`` field, or (older data) an id embedded in its overrides
blob under a tag-specific key. Both are modelled as strategies tried in
precedence order, so the rule "direct wins over embedded" lives in one
tuple rather than in scattered fallbacks.
"""

from dataclasses import dataclass
from typing import Any, Protocol

from src.instance import ComponentInstance, TypeTag

# Values the legacy editor wrote for "no reference"
_EMPTY_REFS = (None, "", 0, "0")


@dataclass(frozen=True)
class ReferenceCandidate:
    """A reference found by one strategy."""

    strategy: str
    ref: str


class ReferenceStrategy(Protocol):
    """Extracts a definition reference from an instance."""

    name: str

    def extract(self, instance: ComponentInstance, overrides: dict[str, Any]) -> str | None:
        """Reference carried by the instance, or None."""
        ...

    def property_values(
        self, instance: ComponentInstance, overrides: dict[str, Any]
    ) -> dict[str, Any]:
        """Overrides with reference bookkeeping removed."""
        ...


class DirectReference:
    """First-class reference stored on the instance itself."""

    name = "direct"

    def extract(self, instance: ComponentInstance, overrides: dict[str, Any]) -> str | None:
        return instance.definition_ref or None

    def property_values(
        self, instance: ComponentInstance, overrides: dict[str, Any]
    ) -> dict[str, Any]:
        return overrides


class EmbeddedReference:
    """Legacy reference stored inside the overrides of one tag.

    Args:
        tag: Tag whose instances use this convention.
        ref_key: Overrides key holding the definition id or slug.
        props_key: Optional overrides key nesting the property values.
    """

    def __init__(self, tag: TypeTag, ref_key: str, props_key: str | None = None):
        self.tag = tag
        self.ref_key = ref_key
        self.props_key = props_key
        self.name = f"embedded:{ref_key}"

    def extract(self, instance: ComponentInstance, overrides: dict[str, Any]) -> str | None:
        if instance.type_tag is not self.tag:
            return None
        value = overrides.get(self.ref_key)
        if value in _EMPTY_REFS or isinstance(value, (dict, list)):
            return None
        return str(value)

    def property_values(
        self, instance: ComponentInstance, overrides: dict[str, Any]
    ) -> dict[str, Any]:
        if instance.type_tag is not self.tag:
            return overrides
        values = {
            k: v for k, v in overrides.items() if k not in (self.ref_key, self.props_key)
        }
        nested = overrides.get(self.props_key) if self.props_key else None
        if isinstance(nested, dict):
            values.update(nested)
        return values


# Precedence order: earlier strategies win
REFERENCE_STRATEGIES: tuple[ReferenceStrategy, ...] = (
    DirectReference(),
    EmbeddedReference(TypeTag.COMPONENT, "component_id", props_key="component_data"),
)


def find_references(
    instance: ComponentInstance,
    overrides: dict[str, Any],
    strategies: tuple[ReferenceStrategy, ...] = REFERENCE_STRATEGIES,
) -> list[ReferenceCandidate]:
    """All references the instance carries, highest precedence first."""
    candidates = []
    for strategy in strategies:
        ref = strategy.extract(instance, overrides)
        if ref:
            candidates.append(ReferenceCandidate(strategy.name, ref))
    return candidates


def property_values(
    instance: ComponentInstance,
    overrides: dict[str, Any],
    strategies: tuple[ReferenceStrategy, ...] = REFERENCE_STRATEGIES,
) -> dict[str, Any]:
    """Overrides with every strategy's bookkeeping keys removed."""
    for strategy in strategies:
        overrides = strategy.property_values(instance, overrides)
    return overrides
