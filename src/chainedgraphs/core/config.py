"""
Configuration schema and loading for chains.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.

The YAML chain definition is a loader for the core: it names graphs,
nodes, the action plugin behind each node, and cross-graph links. It
never contains node bodies. Structural checks (unknown predecessors,
unknown link endpoints, cycles) are left to the core so that YAML and
in-process construction report the same errors.
"""

import os
import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from chainedgraphs.contracts.enums import FailurePolicy
from chainedgraphs.contracts.types import NodeRef

ENV_PREFIX = "CHAINEDGRAPHS"


def _default_max_workers() -> int:
    return os.cpu_count() or 1


class ExecutorSettings(BaseModel):
    """Executor configuration.

    max_workers bounds the worker pool used within one plan level;
    1 runs every node on the caller's thread in plan order.
    """

    model_config = {"frozen": True}

    max_workers: int = Field(
        default_factory=_default_max_workers,
        gt=0,
        description="Maximum concurrent node actions (default: number of CPUs)",
    )
    failure_policy: FailurePolicy = Field(
        default=FailurePolicy.FAIL_FAST,
        description="fail_fast (stop starting nodes after a failure) or best_effort",
    )


class NodeSettings(BaseModel):
    """One node of a graph definition."""

    model_config = {"frozen": True, "extra": "forbid"}

    id: str = Field(min_length=1, description="Node ID, unique within its graph")
    action: str = Field(min_length=1, description="Registered action plugin name")
    options: dict[str, Any] = Field(
        default_factory=dict,
        description="Action options, validated by the action plugin",
    )
    after: list[str] = Field(
        default_factory=list,
        description="IDs of intra-graph predecessors",
    )


class GraphSettings(BaseModel):
    """One graph of the chain."""

    model_config = {"frozen": True, "extra": "forbid"}

    id: str = Field(min_length=1, description="Graph ID, unique within the chain")
    nodes: list[NodeSettings] = Field(min_length=1, description="Nodes of the graph")

    @field_validator("id")
    @classmethod
    def validate_id_has_no_separator(cls, v: str) -> str:
        """Graph IDs cannot contain '.', which separates graph and node in link references."""
        if "." in v:
            raise ValueError(f"Graph id '{v}' must not contain '.'")
        return v

    @model_validator(mode="after")
    def validate_unique_node_ids(self) -> "GraphSettings":
        """Ensure node IDs are unique within the graph."""
        ids = [node.id for node in self.nodes]
        duplicates = sorted({nid for nid in ids if ids.count(nid) > 1})
        if duplicates:
            raise ValueError(f"Duplicate node id(s) in graph '{self.id}': {duplicates}")
        return self


class LinkSettings(BaseModel):
    """A cross-graph link: ``to`` depends on ``from``.

    Example YAML:
        links:
          - from: ingest.parse
            to: report.render
    """

    model_config = {"frozen": True, "extra": "forbid", "populate_by_name": True}

    source: str = Field(alias="from", description="Node that must complete first ('graph.node')")
    target: str = Field(alias="to", description="Node that depends on source ('graph.node')")

    @field_validator("source", "target")
    @classmethod
    def validate_node_ref(cls, v: str) -> str:
        NodeRef.parse(v)
        return v

    @property
    def source_ref(self) -> NodeRef:
        return NodeRef.parse(self.source)

    @property
    def target_ref(self) -> NodeRef:
        return NodeRef.parse(self.target)


class ChainSettings(BaseModel):
    """Top-level chain configuration.

    This is the single source of truth for a YAML-defined chain.
    All settings are validated and frozen after construction.
    """

    model_config = {"frozen": True}

    executor: ExecutorSettings = Field(
        default_factory=ExecutorSettings,
        description="Executor configuration",
    )
    graphs: list[GraphSettings] = Field(
        min_length=1,
        description="Graphs of the chain (one or more required)",
    )
    links: list[LinkSettings] = Field(
        default_factory=list,
        description="Cross-graph links",
    )

    @model_validator(mode="after")
    def validate_unique_graph_ids(self) -> "ChainSettings":
        """Ensure graph IDs are unique."""
        ids = [graph.id for graph in self.graphs]
        duplicates = sorted({gid for gid in ids if ids.count(gid) > 1})
        if duplicates:
            raise ValueError(f"Duplicate graph id(s): {duplicates}")
        return self


# Regex pattern for ${VAR} or ${VAR:-default} syntax
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in config values.

    Args:
        config: Configuration dict (may contain nested structures)

    Returns:
        New dict with environment variables expanded
    """

    def _expand_string(value: str) -> str:
        def replacer(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default = match.group(2)  # None if no default specified
            env_value = os.environ.get(var_name)
            if env_value is not None:
                return env_value
            if default is not None:
                return default
            # No env var and no default - keep original (will likely cause error)
            return match.group(0)

        return _ENV_VAR_PATTERN.sub(replacer, value)

    def _expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _expand_string(value)
        elif isinstance(value, dict):
            return {k: _expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [_expand_value(item) for item in value]
        else:
            return value

    return {k: _expand_value(v) for k, v in config.items()}


def load_settings(config_path: Path) -> ChainSettings:
    """Load a chain definition from YAML with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (CHAINEDGRAPHS_*) - highest priority
    2. Config file
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: CHAINEDGRAPHS_EXECUTOR__MAX_WORKERS=2
    for nested keys.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated ChainSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix=ENV_PREFIX,
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,  # The CLI loads .env itself
        merge_enabled=True,
    )

    # Dynaconf returns uppercase top-level keys (and keeps env-provided
    # nested keys as written); normalize to the lowercase schema names.
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config: dict[str, Any] = {k.lower(): v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    if isinstance(raw_config.get("executor"), dict):
        raw_config["executor"] = {k.lower(): v for k, v in raw_config["executor"].items()}

    raw_config = _expand_env_vars(raw_config)

    return ChainSettings(**raw_config)
