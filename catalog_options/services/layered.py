"""
Generic "most specific tier wins" resolution.

Attributes and options are both stored as a stack of tiers (product, category,
global).  Each tier may leave a field unset (``None``) to inherit it from the
tier above.  ``resolve_layers`` walks the stack once per field and reports the
winning value together with the tier that supplied it, so callers never write
their own null-coalescing chains.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

PRODUCT_TIER = "product"
CATEGORY_TIER = "category"
GLOBAL_TIER = "global"


@dataclass(frozen=True)
class Layer:
    """One tier of a layered record.

    ``columns`` maps a resolved field name to the attribute name that holds it
    on ``record``; fields the tier cannot override are simply left out.
    """
    tier: str
    record: Any
    columns: Mapping[str, str]

    def lookup(self, name: str) -> Any:
        column = self.columns.get(name)
        if self.record is None or column is None:
            return None
        return getattr(self.record, column, None)


@dataclass(frozen=True)
class ResolvedField:
    value: Any
    tier: Optional[str]


@dataclass
class Resolution:
    fields: Dict[str, ResolvedField] = field(default_factory=dict)

    def __getitem__(self, name: str) -> Any:
        return self.fields[name].value

    def tier_of(self, name: str) -> Optional[str]:
        return self.fields[name].tier

    def values(self) -> Dict[str, Any]:
        return {name: resolved.value for name, resolved in self.fields.items()}


def resolve_layers(
    layers: Sequence[Layer],
    names: Iterable[str],
    defaults: Optional[Mapping[str, Any]] = None,
) -> Resolution:
    """Resolve ``names`` across ``layers`` (most specific first).

    A tier provides a field when its record exists and the mapped column is
    neither ``None`` nor an empty string.  ``False`` and ``0`` are explicit
    settings and win over higher tiers.  Fields unset everywhere take the value
    from ``defaults`` (or ``None``) with no tier.
    """
    defaults = defaults or {}
    resolution = Resolution()
    for name in names:
        resolution.fields[name] = _resolve_one(layers, name, defaults.get(name))
    return resolution


def _resolve_one(layers: Sequence[Layer], name: str, default: Any) -> ResolvedField:
    for layer in layers:
        value = layer.lookup(name)
        if value is not None and value != "":
            return ResolvedField(value, layer.tier)
    return ResolvedField(default, None)

