"""Assemble the peering stack from the configuration and write it out as Terraform JSON."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Sequence

from .config import (
    ConfigError,
    PeerConfig,
    convert_to_peer_configs,
    get_account_id_from_role_arn,
    load_config,
)
from .resources import (
    add_outputs,
    create_bidirectional_subnet_routes,
    create_peering_resources,
    setup_peer_core_resources,
)
from .terraform import TerraformStack

log = logging.getLogger(__name__)

STACK_ID = "cdktf-vpc-peering-module"
DEFAULT_SOURCE = "default-source"
DEFAULT_REGION = "us-west-2"
DEFAULT_CONFIG = "peering.yaml"
DEFAULT_OUTDIR = "cdktf.out"
SOURCE_ENV = "CDKTF_SOURCE"


def new_my_stack(
    stack_id: str, source_id: str, peers: Sequence[PeerConfig]
) -> TerraformStack:
    """Build a stack with peering, bi-directional routes and outputs for every peer."""
    stack = TerraformStack(stack_id)
    stack.add_variable(
        "source_id",
        "string",
        description="The source identifier for this resource",
        default=DEFAULT_SOURCE,
    )

    connections = []
    source_tables = []
    peer_tables = []

    for index, peer in enumerate(peers):
        source_region = peer.source_region or DEFAULT_REGION
        peer_region = peer.peer_region or DEFAULT_REGION

        core = setup_peer_core_resources(stack, index, peer, source_region, peer_region)
        source_tables.append(core.source_main_rt)
        peer_tables.append(core.peer_main_rt)

        peer_owner_id = get_account_id_from_role_arn(peer.peer_role_arn)
        name = peer.name or peer.peer_vpc_id
        auto_accept = source_region == peer_region

        peering_res = create_peering_resources(
            stack, index, peer, core, name, peer_owner_id, auto_accept, peer_region
        )
        connections.append(peering_res.peering)

        create_bidirectional_subnet_routes(stack, peer, core, peering_res, name, index)

    add_outputs(stack, peers, connections, source_tables, peer_tables)
    return stack


def synth(stack: TerraformStack, outdir: str | Path = DEFAULT_OUTDIR) -> Path:
    """Write the stack's Terraform JSON under ``outdir`` and return the file's path."""
    target = Path(outdir) / "stacks" / stack.stack_id / "cdk.tf.json"
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(stack.to_dict(), indent=2) + "\n", encoding="utf-8")
    return target


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Synthesize a VPC peering stack from a YAML configuration."
    )
    parser.add_argument("--config", default=DEFAULT_CONFIG, help="configuration file")
    parser.add_argument(
        "--source",
        default=None,
        help=f"source peer to build (default: ${SOURCE_ENV} or {DEFAULT_SOURCE})",
    )
    parser.add_argument("--outdir", default=DEFAULT_OUTDIR, help="output directory")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Load the configuration, build the stack for one source and synthesize it."""
    logging.basicConfig(stream=sys.stdout, format="%(message)s", level=logging.INFO)
    args = _parse_args(argv)

    source_id = args.source or os.environ.get(SOURCE_ENV) or DEFAULT_SOURCE

    try:
        cfg = load_config(args.config)
        peers = convert_to_peer_configs(cfg, source_id)
    except ConfigError as exc:
        log.error("%s", exc)
        return 1

    if not peers:
        log.error("no peers matched for source: %s", source_id)
        return 1

    stack = new_my_stack(STACK_ID, source_id, peers)
    path = synth(stack, args.outdir)
    log.info("wrote %s", path)
    return 0


if __name__ == "__main__":
    sys.exit(main())