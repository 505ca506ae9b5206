# vpcpeering

`vpcpeering` turns a small YAML description of your VPCs, and of which of them
should be connected, into a Terraform JSON configuration file. For every
connection it declares:

- an AWS provider per side, each assuming its own IAM role in its own region;
- lookups (`aws_vpc`) of both VPCs and of their main route tables
  (`aws_route_table` filtered on `association.main = true`);
- the `aws_vpc_peering_connection`, owned by the account taken from the peer's
  role ARN and tagged with `Name`, `ManagedBy`, `SourceVpcId` and `PeerVpcId`;
- when the two sides are in different regions, auto-accept is off and an
  `aws_vpc_peering_connection_accepter` is added on the peer side;
- `aws_vpc_peering_connection_options` setting
  `requester.allow_remote_vpc_dns_resolution`;
- an `aws_route` in the source main route table to the peer VPC's CIDR block,
  and an `aws_route` in the peer main route table; both go through the peering
  connection (the peer-side entry uses the peering connection ID as its
  destination value);
- optionally, routes for tagged subnets on both sides (see below);
- outputs `VpcPeeringConnectionId_<n>`, `SourceMainRouteTableId_<n>`,
  `PeerMainRouteTableId_<n>` and `DnsResolutionEnabled_<n>` for each
  connection, plus a `source_id` input variable.

## Configuration

```yaml
peers:
  shared-services:
    vpc_id: vpc-0aaa0000000000001
    region: us-east-1
    role_arn: arn:aws:iam::111111111111:role/PeeringRole
    dns_resolution: true
    has_additional_routes: false
  workloads:
    vpc_id: vpc-0bbb0000000000002
    region: us-west-2
    role_arn: arn:aws:iam::222222222222:role/PeeringRole
    dns_resolution: false
    has_additional_routes: true

peering_matrix:
  shared-services:
    - workloads
```

- `peers` maps a logical name to a VPC, its region and the role used to reach
  it. An empty or missing region becomes `us-west-2`.
- `peering_matrix` maps a source peer to the list of peers it connects to.
  The `dns_resolution` and `has_additional_routes` flags of each *target* peer
  decide the DNS option and whether subnet routes are added for that
  connection. The target's name is used in resource names and tags (its VPC ID
  when the name is empty).
- With `has_additional_routes: true`, an `aws_subnets` lookup per side selects
  the subnets of that VPC with the tag filter `tag:cdktf-source-main-rt`
  (source side) or `tag:cdktf-peer-main-rt` (peer side), each with the value
  `""`; every matched subnet's route table gets a route to the other VPC's CIDR
  block through the peering connection.
- Top-level `dns_resolution` and `additional_routes` maps are accepted and
  validated but not used when building the stack.

Every name referenced in `peering_matrix` must be defined under `peers`, and
values must have the expected types; otherwise `vpcpeering.config.ConfigError`
is raised.

## Command line

```
vpcpeering [--config PATH] [--source NAME] [--outdir DIR]
```

- `--config` — configuration file (default `peering.yaml`).
- `--source` — the source peer whose `peering_matrix` row is used; defaults to
  the `CDKTF_SOURCE` environment variable, then `default-source`.
- `--outdir` — output directory (default `cdktf.out`).

The command writes
`<outdir>/stacks/cdktf-vpc-peering-module/cdk.tf.json` and logs the path to
standard output. It exits with status 1 and an error message if the
configuration cannot be read or parsed, is inconsistent, or no peers match the
source.

## Library use

```python
from vpcpeering.config import load_config, convert_to_peer_configs
from vpcpeering.app import new_my_stack, synth

cfg = load_config("peering.yaml")
peers = convert_to_peer_configs(cfg, "shared-services")
stack = new_my_stack("cdktf-vpc-peering-module", "shared-services", peers)
path = synth(stack, "out")  # out/stacks/cdktf-vpc-peering-module/cdk.tf.json
```

- `vpcpeering.config` — `YAMLConfig`, `YAMLPeer`, `PeerConfig`, `ConfigError`,
  `load_config`, `convert_to_peer_configs` and `get_account_id_from_role_arn`.
  `get_account_id_from_role_arn("arn:aws:iam::111111111111:role/PeeringRole")`
  returns `"111111111111"`, and an empty string for anything that is not an
  IAM role ARN.
- `vpcpeering.resources` — the building blocks: `create_aws_provider`,
  `create_data_aws_vpc`, `create_main_route_table`, `create_route`,
  `create_subnet_routes`, `create_filtered_subnet_routes`,
  `setup_peer_core_resources`, `create_peering_resources`,
  `create_bidirectional_subnet_routes` and `add_outputs`.
- `vpcpeering.terraform` — `TerraformStack` with `add_variable`,
  `add_provider`, `add_resource`, `add_data_source`, `add_output` and
  `to_dict()`, which returns the Terraform JSON document. Construct names must
  be unique within a stack, and two providers of one type may not share an
  alias; violations raise `ValueError`.

## What it does not do

The package only writes Terraform configuration. It does not run Terraform,
talk to AWS, plan, deploy or destroy anything; use the Terraform CLI on the
generated file for that.