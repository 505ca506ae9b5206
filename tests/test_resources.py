import pytest

from vpcpeering.config import PeerConfig
from vpcpeering.resources import (
    PeerCoreResources,
    PeeringResources,
    add_outputs,
    create_aws_provider,
    create_bidirectional_subnet_routes,
    create_data_aws_vpc,
    create_filtered_subnet_routes,
    create_main_route_table,
    create_peering_resources,
    create_route,
    create_subnet_routes,
    setup_peer_core_resources,
)
from vpcpeering.terraform import TerraformStack

ROLE = "arn:aws:iam::123456789012:role/TestRole"


def _peer(extra=False, dns=True):
    return PeerConfig(
        source_vpc_id="vpc-111",
        source_region="us-west-2",
        source_role_arn="arn:aws:iam::111111111111:role/SourceRole",
        peer_vpc_id="vpc-222",
        peer_region="us-east-1",
        peer_role_arn="arn:aws:iam::222222222222:role/TargetRole",
        name="target-peer",
        enable_dns_resolution=dns,
        has_extra_peer_route_tables=extra,
    )


def _setup(auto_accept=True, extra=False):
    stack = TerraformStack("test-stack")
    peer = _peer(extra=extra)
    core = setup_peer_core_resources(stack, 0, peer, "us-west-2", "us-east-1")
    res = create_peering_resources(
        stack, 0, peer, core, "target-peer", "222222222222", auto_accept, "us-east-1"
    )
    return stack, peer, core, res


def test_create_aws_provider():
    stack = TerraformStack("test-stack")
    provider = create_aws_provider(stack, "TestProvider", "test-alias", "us-west-2", ROLE)
    body = stack.to_dict()["provider"]["aws"][0]
    assert body["region"] == "us-west-2"
    assert body["alias"] == "test-alias"
    assert body["assume_role"] == [{"role_arn": ROLE}]
    assert provider.alias == "test-alias"


def test_create_data_aws_vpc_uses_provider():
    stack = TerraformStack("s")
    provider = create_aws_provider(stack, "P", "src", "us-west-2", ROLE)
    vpc = create_data_aws_vpc(stack, "Vpc", "vpc-123", provider)
    body = stack.to_dict()["data"]["aws_vpc"]["Vpc"]
    assert body == {"id": "vpc-123", "provider": provider.fqn()}
    assert vpc.attr("cidr_block").endswith(".cidr_block}")


def test_create_main_route_table_filters_on_main_association():
    stack = TerraformStack("s")
    provider = create_aws_provider(stack, "P", "src", "us-west-2", ROLE)
    create_main_route_table(stack, "Main", "vpc-123", provider)
    body = stack.to_dict()["data"]["aws_route_table"]["Main"]
    assert body["vpc_id"] == "vpc-123"
    assert body["filter"] == [{"name": "association.main", "values": ["true"]}]


def test_setup_peer_core_resources_names_and_regions():
    stack = TerraformStack("s")
    core = setup_peer_core_resources(stack, 3, _peer(), "us-west-2", "us-east-1")
    assert isinstance(core, PeerCoreResources)
    assert core.source_provider.alias == "source3"
    assert core.peer_provider.alias == "peer3"
    assert core.source_provider.config["region"] == "us-west-2"
    assert core.peer_provider.config["region"] == "us-east-1"
    doc = stack.to_dict()
    assert set(doc["data"]["aws_vpc"]) == {"SourceVpcData3", "PeerVpcData3"}
    assert set(doc["data"]["aws_route_table"]) == {
        "SourceMainRouteTable3",
        "PeerMainRouteTable3",
    }
    assert doc["data"]["aws_vpc"]["PeerVpcData3"]["id"] == "vpc-222"


def test_setup_twice_with_same_index_is_rejected():
    stack = TerraformStack("s")
    setup_peer_core_resources(stack, 0, _peer(), "us-west-2", "us-east-1")
    with pytest.raises(ValueError):
        setup_peer_core_resources(stack, 0, _peer(), "us-west-2", "us-east-1")


def test_peering_auto_accept_has_no_accepter():
    stack, _, core, res = _setup(auto_accept=True)
    assert isinstance(res, PeeringResources)
    assert res.accepter is None
    assert res.depends_on == [res.peering]
    doc = stack.to_dict()["resource"]
    assert "aws_vpc_peering_connection_accepter" not in doc
    body = doc["aws_vpc_peering_connection"]["VpcPeering0"]
    assert body["auto_accept"] is True
    assert body["peer_owner_id"] == "222222222222"
    assert body["peer_region"] == "us-east-1"
    assert body["provider"] == core.source_provider.fqn()
    assert body["tags"]["Name"] == "Connection to target-peer"
    assert body["tags"]["ManagedBy"] == "cdktf"


def test_peering_without_auto_accept_adds_accepter():
    stack, _, core, res = _setup(auto_accept=False)
    assert res.accepter is not None
    assert res.depends_on == [res.peering, res.accepter]
    body = stack.to_dict()["resource"]["aws_vpc_peering_connection_accepter"][
        "VpcPeeringAccepter0"
    ]
    assert body["auto_accept"] is True
    assert body["vpc_peering_connection_id"] == res.peering.attr("id")
    assert body["provider"] == core.peer_provider.fqn()
    assert body["depends_on"] == [res.peering.fqn()]
    assert body["tags"]["Environment"] == "production"


def test_peering_options_carry_dns_flag_and_dependencies():
    stack, _, _, res = _setup(auto_accept=False)
    body = stack.to_dict()["resource"]["aws_vpc_peering_connection_options"][
        "VpcPeeringOptions0"
    ]
    assert body["requester"] == {"allow_remote_vpc_dns_resolution": True}
    assert body["depends_on"] == [res.peering.fqn(), res.accepter.fqn()]
    assert body["vpc_peering_connection_id"] == res.peering.attr("id")


def test_create_route_renders_all_arguments():
    stack, _, core, res = _setup()
    create_route(stack, "R", "rtb-1", "10.0.0.0/16", "pcx-1", core.source_provider, res.depends_on)
    body = stack.to_dict()["resource"]["aws_route"]["R"]
    assert body == {
        "route_table_id": "rtb-1",
        "destination_cidr_block": "10.0.0.0/16",
        "vpc_peering_connection_id": "pcx-1",
        "provider": core.source_provider.fqn(),
        "depends_on": [res.peering.fqn()],
    }


def test_create_subnet_routes_from_list():
    stack, _, core, res = _setup()
    tables, route = create_subnet_routes(
        stack, "X", ["subnet-a", "subnet-b"], core.source_provider, "10.0.0.0/16", "pcx-1", []
    )
    body = route.to_json()
    assert body["for_each"] == tables.to_json()["for_each"]
    assert "subnet-a" in body["for_each"] and "subnet-b" in body["for_each"]
    assert body["route_table_id"] == "${data.aws_route_table.XRouteTable[each.key].id}"
    assert tables.to_json()["subnet_id"] == "${each.value}"


def test_create_subnet_routes_rejects_plain_string():
    stack, _, core, _ = _setup()
    with pytest.raises(ValueError):
        create_subnet_routes(stack, "X", "subnet-a", core.source_provider, "c", "p", [])


def test_create_filtered_subnet_routes():
    stack, peer, core, res = _setup()
    _, route = create_filtered_subnet_routes(
        stack, "Pre", "Subnets0", "vpc-111", core.source_provider,
        "tag:cdktf-source-main-rt", "", "Unused", "10.0.0.0/16", "pcx-1", res.depends_on,
    )
    subnets = stack.to_dict()["data"]["aws_subnets"]["Subnets0"]
    assert subnets["filter"] == [
        {"name": "vpc-id", "values": ["vpc-111"]},
        {"name": "tag:cdktf-source-main-rt", "values": [""]},
    ]
    assert "data.aws_subnets.Subnets0.ids" in route.to_json()["for_each"]
    assert route.name == "PreRoute"


def test_bidirectional_routes_without_extras():
    stack, peer, core, res = _setup()
    create_bidirectional_subnet_routes(stack, peer, core, res, "target-peer", 0)
    doc = stack.to_dict()
    routes = doc["resource"]["aws_route"]
    assert set(routes) == {"SourceToPeerMainRoute0", "PeerToPeerMainRoute0"}
    src = routes["SourceToPeerMainRoute0"]
    assert src["route_table_id"] == core.source_main_rt.attr("id")
    assert src["destination_cidr_block"] == core.peer_vpc_data.attr("cidr_block")
    assert routes["PeerToPeerMainRoute0"]["provider"] == core.peer_provider.fqn()
    assert "aws_subnets" not in doc["data"]


def test_bidirectional_routes_with_extras():
    stack, peer, core, res = _setup(extra=True)
    create_bidirectional_subnet_routes(stack, peer, core, res, "target-peer", 0)
    doc = stack.to_dict()
    assert set(doc["data"]["aws_subnets"]) == {"SourceSubnets0", "PeerSubnets0"}
    routes = doc["resource"]["aws_route"]
    assert "SourceSubnetToPeerRoute_target-peer_eachkey_0Route" in routes
    peer_side = routes["PeerSubnetToSourceRoute_target-peer_eachkey_0Route"]
    assert peer_side["destination_cidr_block"] == core.source_vpc_data.attr("cidr_block")
    assert len(routes) == 4


def test_add_outputs():
    stack, peer, core, res = _setup()
    add_outputs(stack, [peer], [res.peering], [core.source_main_rt], [core.peer_main_rt])
    outputs = stack.to_dict()["output"]
    assert outputs["VpcPeeringConnectionId_0"] == {"value": res.peering.attr("id")}
    assert outputs["SourceMainRouteTableId_0"] == {"value": core.source_main_rt.attr("id")}
    assert outputs["PeerMainRouteTableId_0"] == {"value": core.peer_main_rt.attr("id")}
    assert outputs["DnsResolutionEnabled_0"] == {"value": True}


def test_add_outputs_requires_matching_lengths():
    stack, peer, core, res = _setup()
    with pytest.raises(ValueError):
        add_outputs(stack, [peer, peer], [res.peering], [core.source_main_rt], [core.peer_main_rt])