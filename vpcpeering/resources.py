"""Building blocks that add the AWS peering, routing and output elements to a stack."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Sequence

from .config import PeerConfig
from .terraform import TerraformElement, TerraformProvider, TerraformStack

_AWS = "aws"


@dataclass
class PeerCoreResources:
    """Providers, VPC lookups and main route tables for both sides of a peering."""

    source_provider: TerraformProvider
    peer_provider: TerraformProvider
    source_vpc_data: TerraformElement
    peer_vpc_data: TerraformElement
    source_main_rt: TerraformElement
    peer_main_rt: TerraformElement


@dataclass
class PeeringResources:
    """The peering connection, its optional accepter, its options and the dependency chain."""

    peering: TerraformElement
    accepter: TerraformElement | None
    options: TerraformElement
    depends_on: list[TerraformElement] = field(default_factory=list)


def _for_each(subnet_ids: str | Sequence[str]) -> str:
    """A ``for_each`` expression iterating over a list of subnet IDs."""
    if isinstance(subnet_ids, str):
        if not (subnet_ids.startswith("${") and subnet_ids.endswith("}")):
            raise ValueError(f"expected an interpolation expression, got {subnet_ids!r}")
        return "${toset(" + subnet_ids[2:-1] + ")}"
    return "${toset(" + json.dumps(list(subnet_ids)) + ")}"


def create_aws_provider(
    stack: TerraformStack, name: str, alias: str, region: str, role_arn: str
) -> TerraformProvider:
    """Add an AWS provider that assumes ``role_arn`` in ``region``."""
    return stack.add_provider(
        name,
        _AWS,
        alias,
        {"region": region, "assume_role": [{"role_arn": role_arn}]},
    )


def create_data_aws_vpc(
    stack: TerraformStack, name: str, vpc_id: str, provider: TerraformProvider
) -> TerraformElement:
    """Add a data source looking up the VPC ``vpc_id``."""
    return stack.add_data_source(name, "aws_vpc", {"id": vpc_id, "provider": provider})


def create_main_route_table(
    stack: TerraformStack, name: str, vpc_id: str, provider: TerraformProvider
) -> TerraformElement:
    """Add a data source looking up the main route table of ``vpc_id``."""
    return stack.add_data_source(
        name,
        "aws_route_table",
        {
            "vpc_id": vpc_id,
            "provider": provider,
            "filter": [{"name": "association.main", "values": ["true"]}],
        },
    )


def add_outputs(
    stack: TerraformStack,
    peers: Sequence[PeerConfig],
    vpcs: Sequence[TerraformElement],
    source_tables: Sequence[TerraformElement],
    peer_tables: Sequence[TerraformElement],
) -> None:
    """Add outputs for each peering: connection ID, both main route tables and DNS flag."""
    if min(len(vpcs), len(source_tables), len(peer_tables)) < len(peers):
        raise ValueError("every peer needs a peering connection and two route tables")
    for i, (peer, vpc, source_rt, peer_rt) in enumerate(
        zip(peers, vpcs, source_tables, peer_tables)
    ):
        stack.add_output(f"VpcPeeringConnectionId_{i}", vpc.attr("id"))
        stack.add_output(f"SourceMainRouteTableId_{i}", source_rt.attr("id"))
        stack.add_output(f"PeerMainRouteTableId_{i}", peer_rt.attr("id"))
        stack.add_output(f"DnsResolutionEnabled_{i}", peer.enable_dns_resolution)


def create_subnet_routes(
    stack: TerraformStack,
    name_prefix: str,
    subnet_ids: str | Sequence[str],
    provider: TerraformProvider,
    dest_cidr: str,
    peering_id: str,
    depends_on: Sequence[TerraformElement],
) -> tuple[TerraformElement, TerraformElement]:
    """Add a route table lookup and a route for every subnet in ``subnet_ids``."""
    for_each = _for_each(subnet_ids)
    route_tables = stack.add_data_source(
        name_prefix + "RouteTable",
        "aws_route_table",
        {"for_each": for_each, "subnet_id": "${each.value}", "provider": provider},
    )
    route = stack.add_resource(
        name_prefix + "Route",
        "aws_route",
        {
            "for_each": for_each,
            "route_table_id": "${data.aws_route_table."
            + name_prefix
            + "RouteTable[each.key].id}",
            "destination_cidr_block": dest_cidr,
            "vpc_peering_connection_id": peering_id,
            "provider": provider,
            "depends_on": list(depends_on),
        },
    )
    return route_tables, route


def create_route(
    stack: TerraformStack,
    name: str,
    route_table_id: str,
    dest_cidr: str,
    peering_id: str,
    provider: TerraformProvider,
    depends_on: Sequence[TerraformElement],
) -> TerraformElement:
    """Add a route through a peering connection to a route table."""
    return stack.add_resource(
        name,
        "aws_route",
        {
            "route_table_id": route_table_id,
            "destination_cidr_block": dest_cidr,
            "vpc_peering_connection_id": peering_id,
            "provider": provider,
            "depends_on": list(depends_on),
        },
    )


def create_filtered_subnet_routes(
    stack: TerraformStack,
    name_prefix: str,
    subnet_resource_name: str,
    vpc_id: str,
    provider: TerraformProvider,
    tag_filter_name: str,
    tag_filter_value: str,
    route_table_resource_name: str,
    dest_cidr: str,
    peering_id: str,
    depends_on: Sequence[TerraformElement],
) -> tuple[TerraformElement, TerraformElement]:
    """Add routes for the subnets of ``vpc_id`` that match a tag filter.

    ``route_table_resource_name`` is accepted for symmetry; the route table
    lookup is named after ``name_prefix``.
    """
    subnets = stack.add_data_source(
        subnet_resource_name,
        "aws_subnets",
        {
            "provider": provider,
            "filter": [
                {"name": "vpc-id", "values": [vpc_id]},
                {"name": tag_filter_name, "values": [tag_filter_value]},
            ],
        },
    )
    return create_subnet_routes(
        stack,
        name_prefix,
        subnets.attr("ids"),
        provider,
        dest_cidr,
        peering_id,
        depends_on,
    )


def setup_peer_core_resources(
    stack: TerraformStack,
    index: int,
    peer: PeerConfig,
    source_region: str,
    peer_region: str,
) -> PeerCoreResources:
    """Add providers, VPC lookups and main route tables for peering number ``index``."""
    source_provider = create_aws_provider(
        stack, f"SourceAWS{index}", f"source{index}", source_region, peer.source_role_arn
    )
    peer_provider = create_aws_provider(
        stack, f"PeerAWS{index}", f"peer{index}", peer_region, peer.peer_role_arn
    )
    return PeerCoreResources(
        source_provider=source_provider,
        peer_provider=peer_provider,
        source_vpc_data=create_data_aws_vpc(
            stack, f"SourceVpcData{index}", peer.source_vpc_id, source_provider
        ),
        peer_vpc_data=create_data_aws_vpc(
            stack, f"PeerVpcData{index}", peer.peer_vpc_id, peer_provider
        ),
        source_main_rt=create_main_route_table(
            stack, f"SourceMainRouteTable{index}", peer.source_vpc_id, source_provider
        ),
        peer_main_rt=create_main_route_table(
            stack, f"PeerMainRouteTable{index}", peer.peer_vpc_id, peer_provider
        ),
    )


def create_peering_resources(
    stack: TerraformStack,
    index: int,
    peer: PeerConfig,
    core: PeerCoreResources,
    name: str,
    peer_owner_id: str,
    auto_accept: bool,
    peer_region: str,
) -> PeeringResources:
    """Add the peering connection, an accepter when not auto-accepted, and its options."""
    config = {
        "vpc_id": peer.source_vpc_id,
        "peer_vpc_id": peer.peer_vpc_id,
        "peer_owner_id": peer_owner_id,
        "provider": core.source_provider,
        "auto_accept": auto_accept,
        "tags": {
            "Name": f"Connection to {name}",
            "ManagedBy": "cdktf",
            "SourceVpcId": peer.source_vpc_id,
            "PeerVpcId": peer.peer_vpc_id,
        },
    }
    if core.source_provider is not core.peer_provider:
        config["peer_region"] = peer_region

    peering = stack.add_resource(f"VpcPeering{index}", "aws_vpc_peering_connection", config)

    accepter: TerraformElement | None = None
    if not auto_accept:
        accepter = stack.add_resource(
            f"VpcPeeringAccepter{index}",
            "aws_vpc_peering_connection_accepter",
            {"provider": core.peer_provider, "depends_on": [peering]},
        )
        accepter.add_override("vpc_peering_connection_id", peering.attr("id"))
        accepter.add_override("auto_accept", True)
        accepter.add_override(
            "tags",
            {
                "Name": f"Connection to {name}",
                "Environment": "production",
                "ManagedBy": "cdktf",
                "SourceVpcId": peer.source_vpc_id,
                "PeerVpcId": peer.peer_vpc_id,
            },
        )

    chain = [peering] if accepter is None else [peering, accepter]

    options = stack.add_resource(
        f"VpcPeeringOptions{index}",
        "aws_vpc_peering_connection_options",
        {"provider": core.source_provider, "depends_on": list(chain)},
    )
    options.add_override("vpc_peering_connection_id", peering.attr("id"))
    options.add_override(
        "requester.allow_remote_vpc_dns_resolution", peer.enable_dns_resolution
    )

    return PeeringResources(
        peering=peering, accepter=accepter, options=options, depends_on=list(chain)
    )


def create_bidirectional_subnet_routes(
    stack: TerraformStack,
    peer: PeerConfig,
    core: PeerCoreResources,
    peering_res: PeeringResources,
    name: str,
    index: int,
) -> None:
    """Add main route table entries on both sides and, if enabled, tagged subnet routes."""
    peering_id = peering_res.peering.attr("id")
    create_route(
        stack,
        f"SourceToPeerMainRoute{index}",
        core.source_main_rt.attr("id"),
        core.peer_vpc_data.attr("cidr_block"),
        peering_id,
        core.source_provider,
        peering_res.depends_on,
    )
    create_route(
        stack,
        f"PeerToPeerMainRoute{index}",
        core.peer_main_rt.attr("id"),
        peering_id,
        peering_id,
        core.peer_provider,
        peering_res.depends_on,
    )

    if peer.has_extra_peer_route_tables:
        create_filtered_subnet_routes(
            stack,
            f"SourceSubnetToPeerRoute_{name}_eachkey_{index}",
            f"SourceSubnets{index}",
            peer.source_vpc_id,
            core.source_provider,
            "tag:cdktf-source-main-rt",
            "",
            f"SourceSubnetRouteTable{index}",
            core.peer_vpc_data.attr("cidr_block"),
            peering_id,
            peering_res.depends_on,
        )
        create_filtered_subnet_routes(
            stack,
            f"PeerSubnetToSourceRoute_{name}_eachkey_{index}",
            f"PeerSubnets{index}",
            peer.peer_vpc_id,
            core.peer_provider,
            "tag:cdktf-peer-main-rt",
            "",
            f"PeerSubnetRouteTable{index}",
            core.source_vpc_data.attr("cidr_block"),
            peering_id,
            peering_res.depends_on,
        )