"""Peering configuration: loading the YAML file and expanding it into peer definitions."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

log = logging.getLogger(__name__)

_ROLE_ARN_ACCOUNT = re.compile(r"^arn:aws:iam::(\d+):", re.ASCII)


class ConfigError(Exception):
    """Raised when the peering configuration cannot be read or is inconsistent."""


def _as_str(value: Any, key: str) -> str:
    if value is None:
        return ""
    if isinstance(value, (Mapping, list)):
        raise ConfigError(f"{key}: expected a string, got {type(value).__name__}")
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _as_bool(value: Any, key: str) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ConfigError(f"{key}: expected a boolean, got {value!r}")
    return value


def _as_mapping(value: Any, key: str) -> Mapping[Any, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"{key}: expected a mapping, got {type(value).__name__}")
    return value


def _as_str_list(value: Any, key: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError(f"{key}: expected a list, got {type(value).__name__}")
    return [_as_str(item, key) for item in value]


@dataclass
class YAMLPeer:
    """One entry of the ``peers`` section of the configuration file."""

    vpc_id: str = ""
    region: str = ""
    role_arn: str = ""
    dns_resolution: bool = False
    has_additional_routes: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "YAMLPeer":
        """Build a peer from a parsed YAML mapping; unknown keys are ignored."""
        data = _as_mapping(data, "peer")
        return cls(
            vpc_id=_as_str(data.get("vpc_id"), "vpc_id"),
            region=_as_str(data.get("region"), "region"),
            role_arn=_as_str(data.get("role_arn"), "role_arn"),
            dns_resolution=_as_bool(data.get("dns_resolution"), "dns_resolution"),
            has_additional_routes=_as_bool(
                data.get("has_additional_routes"), "has_additional_routes"
            ),
        )


@dataclass
class YAMLConfig:
    """The whole configuration file: peers, the peering matrix and optional extras."""

    peers: dict[str, YAMLPeer] = field(default_factory=dict)
    peering_matrix: dict[str, list[str]] = field(default_factory=dict)
    dns_resolution: dict[str, bool] = field(default_factory=dict)
    additional_routes: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "YAMLConfig":
        """Build a configuration from a parsed YAML document."""
        data = _as_mapping(data, "config")
        peers = {
            str(name): YAMLPeer.from_mapping(entry)
            for name, entry in _as_mapping(data.get("peers"), "peers").items()
        }
        matrix = {
            str(source): _as_str_list(targets, f"peering_matrix.{source}")
            for source, targets in _as_mapping(
                data.get("peering_matrix"), "peering_matrix"
            ).items()
        }
        dns = {
            str(name): _as_bool(flag, f"dns_resolution.{name}")
            for name, flag in _as_mapping(
                data.get("dns_resolution"), "dns_resolution"
            ).items()
        }
        routes = {
            str(name): _as_str_list(items, f"additional_routes.{name}")
            for name, items in _as_mapping(
                data.get("additional_routes"), "additional_routes"
            ).items()
        }
        return cls(
            peers=peers,
            peering_matrix=matrix,
            dns_resolution=dns,
            additional_routes=routes,
        )


@dataclass
class PeerConfig:
    """A single peering connection between a source VPC and a peer VPC."""

    source_vpc_id: str = ""
    source_region: str = ""
    source_role_arn: str = ""
    peer_vpc_id: str = ""
    peer_region: str = ""
    peer_role_arn: str = ""
    name: str = ""
    enable_dns_resolution: bool = False
    has_extra_peer_route_tables: bool = False


def get_account_id_from_role_arn(role_arn: str) -> str:
    """Return the account ID embedded in an IAM role ARN, or an empty string."""
    match = _ROLE_ARN_ACCOUNT.match(role_arn)
    return match.group(1) if match else ""


def load_config(path: str | Path) -> YAMLConfig:
    """Read and parse the YAML configuration file at ``path``."""
    try:
        raw = Path(path).read_bytes()
    except OSError as exc:
        raise ConfigError(f"failed to read config file: {exc}") from exc
    try:
        document = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ConfigError(f"failed to parse yaml: {exc}") from exc
    return YAMLConfig.from_mapping(document)


def convert_to_peer_configs(cfg: YAMLConfig, source_filter: str = "") -> list[PeerConfig]:
    """Expand the peering matrix into peer configurations.

    When ``source_filter`` is non-empty only rows for that source are used.
    """
    log.info("[convert] Applying source filter: %r", source_filter)
    result: list[PeerConfig] = []
    for source, targets in cfg.peering_matrix.items():
        if source_filter and source != source_filter:
            continue
        log.info("[convert] Considering source: %r", source)
        try:
            source_peer = cfg.peers[source]
        except KeyError:
            raise ConfigError(f"missing source peer config for {source!r}") from None
        for target in targets:
            try:
                target_peer = cfg.peers[target]
            except KeyError:
                raise ConfigError(f"missing peer config for {target!r}") from None
            result.append(
                PeerConfig(
                    source_vpc_id=source_peer.vpc_id,
                    source_region=source_peer.region,
                    source_role_arn=source_peer.role_arn,
                    peer_vpc_id=target_peer.vpc_id,
                    peer_region=target_peer.region,
                    peer_role_arn=target_peer.role_arn,
                    name=target,
                    enable_dns_resolution=target_peer.dns_resolution,
                    has_extra_peer_route_tables=target_peer.has_additional_routes,
                )
            )
    log.info("[convert] Returning %d peer configs", len(result))
    return result