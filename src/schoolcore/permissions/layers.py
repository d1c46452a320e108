"""Layer tree and rule resolution.

The tree is plain data built once at startup from a nested mapping (see
``profiles.DEFAULT_LAYERS``) and never mutated afterwards, so it can be
shared by any number of concurrent evaluations without locking.

Resolution for ``(layer_id, variant, category)``:

1. Walk the dot-path from the root. Unknown segments become synthesized
   leaves that inherit every variant and carry no rules, so a concrete id
   like ``board.school.7`` resolves through ``board.school``.
2. A rule present at the node wins, including an explicit ``none`` or
   ``blocked``.
3. Absent and the variant inherits: continue at the parent.
4. Absent and not inheriting, or past the root: ``blocked``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional

from ..exceptions import ConfigurationError
from .actions import Action, parse_action
from .constants import Category, Variant

logger = logging.getLogger(__name__)

_INHERIT_KEY = "inherit"


class RuleSet:
    """Per-category rules of one variant on one layer."""

    __slots__ = ("rules", "inherit")

    def __init__(self, rules: Mapping[str, Action] | None = None, inherit: bool = False) -> None:
        self.rules: Mapping[str, Action] = MappingProxyType(dict(rules or {}))
        self.inherit = inherit

    def get(self, category: str) -> Optional[Action]:
        return self.rules.get(category)

    @classmethod
    def from_mapping(cls, spec: Mapping[str, Any], where: str = "") -> "RuleSet":
        """Build a rule set from ``{"adminCan": "read", "inherit": True}``-style config.

        Raises:
            ConfigurationError: unknown category, unknown action or a
                non-boolean ``inherit``.
        """
        inherit = spec.get(_INHERIT_KEY, False)
        if not isinstance(inherit, bool):
            raise ConfigurationError(f"'inherit' must be a boolean at {where}", layer=where)

        rules: dict[str, Action] = {}
        for raw_category, raw_action in spec.items():
            if raw_category == _INHERIT_KEY:
                continue
            category = Category.ALIASES.get(raw_category, raw_category)
            if category not in Category.ALL:
                raise ConfigurationError(f"Unknown category '{raw_category}' at {where}", layer=where)
            action = parse_action(raw_action)
            if action is None:
                raise ConfigurationError(f"Unknown action '{raw_action}' at {where}", layer=where)
            rules[category] = action
        return cls(rules, inherit=inherit)

    def __repr__(self) -> str:
        rules = {k: v.value for k, v in self.rules.items()}
        return f"RuleSet(rules={rules!r}, inherit={self.inherit!r})"


# Synthesized nodes inherit everything; defined nodes missing a variant do not.
_INHERIT_ALL = RuleSet(inherit=True)
_NO_RULES = RuleSet()


class LayerNode:
    """A named point in the layer tree."""

    __slots__ = ("name", "path", "parent", "rules", "children", "synthetic")

    def __init__(
        self,
        name: str,
        path: str,
        parent: Optional["LayerNode"] = None,
        rules: Mapping[str, RuleSet] | None = None,
        synthetic: bool = False,
    ) -> None:
        self.name = name
        self.path = path
        self.parent = parent
        self.rules: Mapping[str, RuleSet] = MappingProxyType(dict(rules or {}))
        self.children: dict[str, LayerNode] = {}
        self.synthetic = synthetic

    def rule_set(self, variant: str) -> RuleSet:
        if self.synthetic:
            return _INHERIT_ALL
        return self.rules.get(variant, _NO_RULES)

    def ancestors(self) -> Iterator["LayerNode"]:
        """Yield this node, then each parent up to the root."""
        node: Optional[LayerNode] = self
        while node is not None:
            yield node
            node = node.parent

    def __repr__(self) -> str:
        return f"LayerNode(path={self.path!r}, synthetic={self.synthetic!r})"


def split_layer_id(layer_id: object) -> Optional[list[str]]:
    """Split a dot-path; ``None`` for empty ids or empty segments."""
    if not isinstance(layer_id, str) or not layer_id:
        return None
    segments = layer_id.split(".")
    if any(not segment.strip() for segment in segments):
        return None
    return segments


class LayerTree:
    """Static tree of protected-resource layers.

    Example::

        tree = LayerTree.from_mapping(DEFAULT_LAYERS)
        tree.resolve_rule("board.school.7", Category.ADMIN)  # Action.READ
    """

    def __init__(self) -> None:
        self.root = LayerNode(name="", path="")
        self._index: dict[str, LayerNode] = {}

    # ── Construction ────────────────────────────────────

    @classmethod
    def from_mapping(cls, layers: Mapping[str, Any]) -> "LayerTree":
        """Build a tree from nested config.

        Keys starting with ``_`` name a variant (``_default``, ``_public``,
        ``_private``, ``_store``); every other key is a child layer.

        Raises:
            ConfigurationError: on malformed layer names, variants or rules.
        """
        tree = cls()
        for name, spec in layers.items():
            tree._add(name, spec, tree.root)
        logger.debug("Layer tree built with %d layers", len(tree._index))
        return tree

    @classmethod
    def from_file(cls, path: str | Path) -> "LayerTree":
        """Load a tree from a JSON file with the same shape as ``DEFAULT_LAYERS``."""
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot load layer tree from {path}: {e}", path=str(path)) from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Layer tree in {path} must be a JSON object", path=str(path))
        return cls.from_mapping(data)

    def _add(self, name: str, spec: Any, parent: LayerNode) -> None:
        if not isinstance(name, str) or not name or "." in name:
            raise ConfigurationError(f"Invalid layer name {name!r} under '{parent.path}'")
        path = f"{parent.path}.{name}" if parent.path else name
        if not isinstance(spec, Mapping):
            raise ConfigurationError(f"Layer '{path}' must be a mapping", layer=path)

        rules: dict[str, RuleSet] = {}
        children: list[tuple[str, Any]] = []
        for key, value in spec.items():
            if key.startswith("_"):
                variant = key[1:]
                if variant not in Variant.ALL:
                    raise ConfigurationError(f"Unknown variant '{key}' at '{path}'", layer=path)
                if not isinstance(value, Mapping):
                    raise ConfigurationError(f"Variant '{key}' at '{path}' must be a mapping", layer=path)
                rules[variant] = RuleSet.from_mapping(value, where=f"{path}.{key}")
            else:
                children.append((key, value))

        node = LayerNode(name=name, path=path, parent=parent, rules=rules)
        parent.children[name] = node
        self._index[path] = node
        for child_name, child_spec in children:
            self._add(child_name, child_spec, node)

    # ── Lookup ──────────────────────────────────────────

    def __contains__(self, layer_id: object) -> bool:
        return isinstance(layer_id, str) and layer_id in self._index

    def get(self, layer_id: str) -> Optional[LayerNode]:
        """Static node for ``layer_id``; ``None`` if it is not declared."""
        return self._index.get(layer_id)

    def walk(self) -> Iterator[LayerNode]:
        """Yield every static node, parents before children."""
        stack = list(reversed(self.root.children.values()))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children.values()))

    def static_prefix(self, layer_id: str) -> Optional[LayerNode]:
        """Deepest declared node on the path of ``layer_id``."""
        segments = split_layer_id(layer_id)
        if segments is None:
            return None
        found: Optional[LayerNode] = None
        node = self.root
        for segment in segments:
            child = node.children.get(segment)
            if child is None:
                break
            found = node = child
        return found

    def locate(self, layer_id: str) -> Optional[LayerNode]:
        """Find the node for ``layer_id``, synthesizing unknown segments.

        Returns ``None`` only for a malformed id.
        """
        segments = split_layer_id(layer_id)
        if segments is None:
            return None
        node = self.root
        for segment in segments:
            child = None if node.synthetic else node.children.get(segment)
            if child is None:
                path = f"{node.path}.{segment}" if node.path else segment
                child = LayerNode(name=segment, path=path, parent=node, synthetic=True)
            node = child
        return node

    # ── Resolution ──────────────────────────────────────

    def resolve_rule(self, layer_id: str, category: str, variant: str = Variant.DEFAULT) -> Action:
        """Strongest action ``category`` may perform at ``layer_id``.

        Returns ``Action.BLOCKED`` for unknown categories/variants,
        malformed ids, or when nothing applicable is defined.
        """
        variant = variant or Variant.DEFAULT
        if category not in Category.ALL or variant not in Variant.ALL:
            return Action.BLOCKED
        node = self.locate(layer_id)
        if node is None:
            return Action.BLOCKED

        for current in node.ancestors():
            rule_set = current.rule_set(variant)
            action = rule_set.get(category)
            if action is not None:
                return action
            if not rule_set.inherit:
                return Action.BLOCKED
        return Action.BLOCKED


__all__ = [
    "LayerNode",
    "LayerTree",
    "RuleSet",
    "split_layer_id",
]
