"""Block registry — loads block type definitions from YAML files.

- YAML-per-type in definitions/ directory
- Lazy loading with _loaded guard
- In-memory dict keyed by type_key
- Global singleton via get_block_registry()
"""

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from .schemas import BlockTypeDefinition

logger = logging.getLogger(__name__)


class BlockRegistry:
    """Registry of block type definitions loaded from YAML files."""

    def __init__(self, definitions_dir: Optional[Path] = None):
        self.definitions_dir = definitions_dir or (
            Path(__file__).parent / "definitions"
        )
        self._types: dict[str, BlockTypeDefinition] = {}
        self._loaded = False

    def load(self) -> None:
        """Load all block type definitions from YAML files."""
        if self._loaded:
            return

        if not self.definitions_dir.exists():
            logger.warning(
                f"Block definitions directory not found: {self.definitions_dir}"
            )
            self._loaded = True
            return

        for yaml_file in sorted(self.definitions_dir.glob("*.yaml")):
            try:
                with open(yaml_file, "r") as f:
                    data = yaml.safe_load(f)
                if data is None:
                    continue
                definition = BlockTypeDefinition.model_validate(data)
            except (OSError, yaml.YAMLError, ValidationError) as e:
                logger.error(f"Failed to load block definition {yaml_file}: {e}")
                continue
            self._types[definition.type_key] = definition
            logger.debug(f"Loaded block type: {definition.type_key}")

        self._loaded = True
        logger.info(f"Loaded {len(self._types)} block type definitions")

    def get(self, type_key: str) -> Optional[BlockTypeDefinition]:
        """Get a block type definition by tag."""
        self.load()
        return self._types.get(type_key)

    def list_all(self) -> list[BlockTypeDefinition]:
        """List all block type definitions."""
        self.load()
        return list(self._types.values())

    def list_keys(self) -> list[str]:
        """List all registered type tags."""
        self.load()
        return sorted(self._types.keys())

    def for_category(self, category: str) -> list[BlockTypeDefinition]:
        self.load()
        return [d for d in self._types.values() if d.category == category]

    def count(self) -> int:
        """Get total number of registered block types."""
        self.load()
        return len(self._types)

    def register(self, definition: BlockTypeDefinition) -> None:
        """Register (or replace) a block type in memory."""
        self.load()
        if definition.type_key in self._types:
            logger.info(f"Replacing block type: {definition.type_key}")
        self._types[definition.type_key] = definition

    def unregister(self, type_key: str) -> bool:
        self.load()
        return self._types.pop(type_key, None) is not None

    def reload(self) -> None:
        """Force reload definitions from disk."""
        self._types.clear()
        self._loaded = False
        self.load()


_registry: Optional[BlockRegistry] = None


def get_block_registry() -> BlockRegistry:
    """Get the global block registry instance."""
    global _registry
    if _registry is None:
        _registry = BlockRegistry()
        _registry.load()
    return _registry
