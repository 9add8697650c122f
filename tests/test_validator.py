"""Tests for the object validators and the section walk."""
import textwrap

import pytest

from fabric_provisioner.config import ConfigDocument
from fabric_provisioner.config_engine import SECTION_ORDER, ConfigValidator, Severity
from fabric_provisioner.config_engine.schema import (
    BootDeviceType,
    FabricAffinity,
    FabricId,
    LocalMedia,
    PolicyKind,
    PoolKind,
    PortMode,
    PortRole,
)


def validate(text: str):
    doc = ConfigDocument.from_text(textwrap.dedent(text))
    return ConfigValidator().validate(doc)


def errors(report, section=None) -> list[str]:
    return [r.message for r in report.errors if section is None or r.section == section]


def warnings(report, section=None) -> list[str]:
    return [r.message for r in report.warnings if section is None or r.section == section]


class TestSectionWalk:
    """Tests for the validator as a whole."""

    def test_empty_document(self):
        """Every section is visited and reported undefined; the verdict passes."""
        registry, report = validate("")
        assert report.closed
        assert report.passed
        assert report.undefined == list(SECTION_ORDER)
        assert registry.undefined_sections() == list(SECTION_ORDER)

    def test_unknown_section_warns(self):
        """Unknown top-level keys are warned about; Endpoint is not."""
        _, report = validate("""
            Endpoint:
              Client: memory
            Vlans:
              - Name: typo
        """)
        assert report.passed
        assert [(r.section, r.message) for r in report.warnings] == [("Vlans", "unknown section ignored")]

    def test_all_errors_collected(self):
        """Validation keeps going after the first bad entry and section."""
        _, report = validate("""
            VLANs:
              - Name: one
                Id: 5000
              - Name: two
                Id: 0
            Policies:
              - Kind: power
                Name: p
                Priority: 11
        """)
        assert len(report.errors) == 3
        assert {r.section for r in report.errors} == {"VLANs", "Policies"}

    def test_section_not_a_list(self):
        """A section given as a mapping is an error, not undefined."""
        registry, report = validate("""
            VLANs:
              Name: mgmt
              Id: 10
        """)
        assert errors(report, "VLANs") == ["section must be a list of entries"]
        assert registry.is_present("VLANs")
        assert "VLANs" not in report.undefined

    def test_failed_entries_stay_out_of_registry(self):
        """Only valid entries reach the registry."""
        registry, _ = validate("""
            VLANs:
              - Name: good
                Id: 10
              - Name: bad
                Id: x
        """)
        assert [v.name for v in registry.entries("VLANs")] == ["good"]


class TestOrganizations:
    """Tests for organizations."""

    def test_valid(self):
        """A named organization is accepted."""
        registry, report = validate("""
            Organizations:
              - Name: Lab
                Description: lab servers
        """)
        assert report.passed
        [org] = registry.entries("Organizations")
        assert (org.name, org.description) == ("Lab", "lab servers")

    def test_root_cannot_be_created(self):
        """root always exists."""
        _, report = validate("""
            Organizations:
              - Name: root
        """)
        assert "cannot be created" in errors(report)[0]

    def test_duplicate_names(self):
        """The same name twice is a duplicate."""
        _, report = validate("""
            Organizations:
              - Name: Lab
              - Name: Lab
        """)
        assert errors(report) == ["duplicate name 'Lab' (first defined by entry #1)"]


class TestPools:
    """Tests for identity pools."""

    def test_mac_pool(self):
        """A MAC pool is accepted and its bounds upper-cased."""
        registry, report = validate("""
            Pools:
              - Kind: mac
                Name: MAC-A
                From: 00:25:b5:00:00:00
                To: 00:25:b5:00:00:ff
                Order: sequential
        """)
        assert report.passed
        [pool] = registry.entries("Pools")
        assert pool.kind is PoolKind.MAC
        assert (pool.start, pool.end) == ("00:25:B5:00:00:00", "00:25:B5:00:00:FF")
        assert pool.org == "root"

    def test_from_must_be_lower_than_to(self):
        """A reversed range is rejected."""
        _, report = validate("""
            Pools:
              - Kind: mac
                Name: MAC-A
                From: 00:25:B5:00:00:FF
                To: 00:25:B5:00:00:00
        """)
        assert errors(report) == ["From 00:25:B5:00:00:FF must be lower than To 00:25:B5:00:00:00"]

    def test_equal_bounds_rejected(self):
        """From must be strictly lower than To."""
        _, report = validate("""
            Pools:
              - Kind: uuid
                Name: U
                From: 0000-000000000001
                To: 0000-000000000001
        """)
        assert "must be lower than" in errors(report)[0]

    def test_wwn_numeric_order(self):
        """WWN bounds compare numerically."""
        _, report = validate("""
            Pools:
              - Kind: wwpn
                Name: W
                From: 20:00:00:25:B5:00:00:10
                To: 20:00:00:25:B5:00:00:0F
        """)
        assert "must be lower than" in errors(report)[0]

    def test_bound_format_per_kind(self):
        """A MAC value in a WWN pool is rejected for the attribute."""
        _, report = validate("""
            Pools:
              - Kind: wwnn
                Name: W
                From: 00:25:B5:00:00:00
                To: 20:00:00:25:B5:00:00:0F
        """)
        assert errors(report)[0].startswith("From: ")

    def test_uuid_prefix(self):
        """A malformed UUID prefix is rejected."""
        _, report = validate("""
            Pools:
              - Kind: uuid
                Name: U
                Prefix: 1234
                From: 0000-000000000001
                To: 0000-0000000000FF
        """)
        assert errors(report)[0].startswith("Prefix: ")

    def test_ip_pool(self):
        """An IP pool needs a gateway and a contiguous netmask."""
        registry, report = validate("""
            Pools:
              - Kind: ip
                Name: good
                From: 10.0.0.10
                To: 10.0.0.20
                Gateway: 10.0.0.1
                Netmask: 255.255.255.0
              - Kind: ip
                Name: bad
                From: 10.0.0.10
                To: 10.0.0.20
                Netmask: 255.0.255.0
        """)
        assert [p.name for p in registry.entries("Pools")] == ["good"]
        assert set(errors(report)) == {
            "missing required attribute Gateway",
            "Netmask: '255.0.255.0' is not a contiguous mask",
        }

    def test_ip_pool_leading_zeros(self):
        """Zero-padded octets are ordered by value and never abort validation."""
        registry, report = validate("""
            Pools:
              - Kind: ip
                Name: padded
                From: 10.0.0.01
                To: 10.0.0.020
                Gateway: 10.0.0.1
                Netmask: 255.255.255.000
              - Kind: ip
                Name: reversed
                From: 10.0.0.010
                To: 10.0.0.09
                Gateway: 10.0.0.1
                Netmask: 255.000.255.0
        """)
        assert [p.name for p in registry.entries("Pools")] == ["padded"]
        assert set(errors(report)) == {
            "From 10.0.0.010 must be lower than To 10.0.0.09",
            "Netmask: '255.000.255.0' is not a contiguous mask",
        }

    def test_unknown_kind(self):
        """The kind must be one of the pool kinds."""
        _, report = validate("""
            Pools:
              - Kind: vlan
                Name: X
                From: a
                To: b
        """)
        assert errors(report)[0].startswith("Kind: ")

    def test_duplicates_per_kind(self):
        """Names repeat freely across kinds, but wwnn and wwpn share names."""
        _, report = validate("""
            Pools:
              - Kind: mac
                Name: P
                From: 00:25:B5:00:00:00
                To: 00:25:B5:00:00:FF
              - Kind: uuid
                Name: P
                From: 0000-000000000001
                To: 0000-0000000000FF
              - Kind: wwnn
                Name: W
                From: 20:00:00:25:B5:00:00:00
                To: 20:00:00:25:B5:00:00:FF
              - Kind: wwpn
                Name: W
                From: 20:00:00:25:B5:01:00:00
                To: 20:00:00:25:B5:01:00:FF
        """)
        assert errors(report) == ["duplicate wwn pool 'W' (first defined by entry #3)"]


class TestSegments:
    """Tests for VLANs and VSANs."""

    def test_common_vlan(self):
        """A common VLAN has one tag for both fabrics."""
        registry, report = validate("""
            VLANs:
              - Name: mgmt
                Id: 10
                Default: yes
        """)
        assert report.passed
        [vlan] = registry.entries("VLANs")
        assert vlan.affinity is FabricAffinity.COMMON
        assert vlan.tags_by_fabric() == {None: 10}
        assert vlan.default_net is True

    def test_dual_vlan(self):
        """A dual VLAN carries a tag per fabric."""
        registry, report = validate("""
            VLANs:
              - Name: storage
                Fabric: dual
                Id: 18
                IdB: 19
        """)
        assert report.passed
        [vlan] = registry.entries("VLANs")
        assert vlan.tags_by_fabric() == {FabricId.A: 18, FabricId.B: 19}

    def test_dual_vlan_requires_second_tag(self):
        """A dual VLAN without IdB is rejected."""
        registry, report = validate("""
            VLANs:
              - Name: storage
                Fabric: dual
                Id: 18
        """)
        assert errors(report) == ["missing required attribute IdB"]
        assert registry.entries("VLANs") == ()

    def test_id_required(self):
        """Every VLAN needs an Id."""
        _, report = validate("""
            VLANs:
              - Name: mgmt
                Fabric: a
        """)
        assert errors(report) == ["missing required attribute Id"]

    def test_empty_id_rejected(self):
        """An explicitly empty Id leaves the segment without a tag."""
        _, report = validate("""
            VLANs:
              - Name: mgmt
                Fabric: common
                Id:
              - Name: storage
                Fabric: dual
                Id: 18
                IdB: ""
        """)
        assert errors(report) == [
            "Id: tag may not be empty for a common segment",
            "IdB: tag may not be empty for a dual segment",
        ]

    def test_empty_second_tag_on_single_fabric(self):
        """An empty IdB is fine where no second tag is needed."""
        _, report = validate("""
            VLANs:
              - Name: mgmt
                Fabric: a
                Id: 10
                IdB:
        """)
        assert report.passed
        assert warnings(report) == []

    def test_second_tag_ignored_for_single_fabric(self):
        """IdB on a non-dual VLAN is a warning and dropped."""
        registry, report = validate("""
            VLANs:
              - Name: mgmt
                Fabric: b
                Id: 10
                IdB: 11
        """)
        assert report.passed
        assert warnings(report) == ["IdB is ignored for a b segment"]
        assert registry.entries("VLANs")[0].tag_b is None

    def test_tag_range(self):
        """VLAN tags run 1-4095."""
        _, report = validate("""
            VLANs:
              - Name: high
                Id: 4096
        """)
        assert errors(report) == ["Id: 4096 is outside 1-4095"]

    def test_vsan(self):
        """A VSAN needs an FCoE VLAN; VSAN ids stop at 4093."""
        registry, report = validate("""
            VSANs:
              - Name: vsan-a
                Fabric: a
                Id: 100
                FcoeVlan: 1100
              - Name: too-high
                Id: 4094
                FcoeVlan: 1101
              - Name: no-fcoe
                Id: 200
        """)
        assert [v.name for v in registry.entries("VSANs")] == ["vsan-a"]
        assert registry.entries("VSANs")[0].fcoe_vlan == 1100
        assert set(errors(report)) == {
            "Id: 4094 is outside 1-4093",
            "missing required attribute FcoeVlan",
        }


class TestPolicies:
    """Tests for policies."""

    def test_power_priority(self):
        """Priority is 1-10 or no-cap."""
        registry, report = validate("""
            Policies:
              - Kind: power
                Name: capped
                Priority: 5
              - Kind: power
                Name: uncapped
                Priority: No-Cap
              - Kind: power
                Name: bad
                Priority: 11
        """)
        modes = {p.name: p.mode for p in registry.entries("Policies")}
        assert modes == {"capped": "5", "uncapped": "no-cap"}
        assert errors(report) == ["Priority: 11 is outside 1-10"]

    def test_defaults_and_switches(self):
        """Each kind has a default setting and yes/no switches."""
        registry, report = validate("""
            Policies:
              - Kind: scrub
                Name: s
                BiosScrub: yes
              - Kind: disk
                Name: d
              - Kind: bios
                Name: b
        """)
        assert report.passed
        policies = {p.kind: p for p in registry.entries("Policies")}
        assert policies[PolicyKind.SCRUB].mode == "no"
        assert policies[PolicyKind.SCRUB].settings == {"BiosScrub": "yes"}
        assert policies[PolicyKind.DISK].mode == "any-configuration"
        assert policies[PolicyKind.DISK].settings == {"Protect": "yes"}
        assert policies[PolicyKind.BIOS].mode == "platform-default"

    def test_closed_set(self):
        """Settings outside the kind's set are rejected."""
        _, report = validate("""
            Policies:
              - Kind: maintenance
                Name: m
                RebootPolicy: whenever
        """)
        assert errors(report)[0].startswith("RebootPolicy: 'whenever' is not one of")

    def test_attribute_of_other_kind_warns(self):
        """An attribute belonging to another kind is an unknown attribute."""
        _, report = validate("""
            Policies:
              - Kind: placement
                Name: p
                Priority: 5
        """)
        assert report.passed
        assert warnings(report) == ["unknown attribute 'Priority' ignored"]

    def test_duplicate_names_per_kind(self):
        """Two policies of one kind cannot share a name."""
        _, report = validate("""
            Policies:
              - Kind: power
                Name: std
              - Kind: scrub
                Name: std
              - Kind: power
                Name: std
        """)
        assert errors(report) == ["duplicate power 'std' (first defined by entry #1)"]


class TestInterfaceTemplates:
    """Tests for vNIC and vHBA templates."""

    def test_vnic_template(self):
        """A vNIC template with every attribute."""
        registry, report = validate("""
            VnicTemplates:
              - Name: eth0
                Fabric: a-b
                Mtu: 9000
                MacPool: MAC-A
                Vlan: mgmt
                Native: yes
                UpdateMode: updating-template
        """)
        assert report.passed
        [template] = registry.entries("VnicTemplates")
        assert template.fabric == "A-B"
        assert template.mtu == 9000
        assert template.native is True

    def test_vnic_template_checks(self):
        """Mtu is 1500 or 9000 and a VLAN is required."""
        _, report = validate("""
            VnicTemplates:
              - Name: eth0
                Mtu: 1400
        """)
        assert len(report.errors) == 2
        assert "missing required attribute Vlan" in errors(report)

    def test_vhba_template(self):
        """A vHBA template is bound to one fabric."""
        registry, report = validate("""
            VhbaTemplates:
              - Name: fc0
                Fabric: B
                Vsan: vsan-b
              - Name: fc1
                Fabric: A-B
                Vsan: vsan-a
        """)
        assert [t.name for t in registry.entries("VhbaTemplates")] == ["fc0"]
        assert errors(report)[0].startswith("Fabric: 'A-B' is not one of")


class TestPortRoles:
    """Tests for port role rows."""

    def test_roles(self):
        """Server, uplink and unset rows need no extra attributes."""
        registry, report = validate("""
            PortRoles:
              - Module: 1
                Port: 1
                Role: server
              - Module: 1
                Port: 32
                Role: uplink
              - Module: 2
                Port: 16
        """)
        assert report.passed
        assert [r.role for r in registry.entries("PortRoles")] == [
            PortRole.SERVER, PortRole.UPLINK, PortRole.UNSET,
        ]

    def test_port_range_per_module(self):
        """Module 2 has 16 ports."""
        _, report = validate("""
            PortRoles:
              - Module: 2
                Port: 17
                Role: server
        """)
        assert errors(report) == ["Port: 17 is outside 1-16 (module 2 has 16 ports)"]

    @pytest.mark.parametrize("role", ["unset", "server", "uplink", "fcoe"])
    def test_port_beyond_module_one(self, role):
        """Port 40 does not exist on module 1, whatever the role."""
        _, report = validate(f"""
            PortRoles:
              - Module: 1
                Port: 40
                Role: {role}
        """)
        assert errors(report) == ["Port: 40 is outside 1-32 (module 1 has 32 ports)"]

    def test_unknown_module(self):
        """Only modules 1 and 2 exist."""
        _, report = validate("""
            PortRoles:
              - Module: 3
                Port: 1
        """)
        assert errors(report)[0].startswith("Module: '3' is not one of")

    def test_appliance_requires_vlan_and_mode(self):
        """An appliance port needs a VLAN and a mode."""
        registry, report = validate("""
            PortRoles:
              - Module: 1
                Port: 5
                Role: appliance
              - Module: 1
                Port: 6
                Role: appliance
                Vlan: storage
                Mode: trunk
                Qos: gold
        """)
        assert set(errors(report)) == {
            "missing required attribute Vlan",
            "missing required attribute Mode",
        }
        [row] = registry.entries("PortRoles")
        assert (row.vlan, row.mode, row.qos) == ("storage", PortMode.TRUNK, "gold")

    def test_appliance_attributes_on_other_roles(self):
        """Appliance attributes on a server port are ignored with a warning."""
        registry, report = validate("""
            PortRoles:
              - Module: 1
                Port: 5
                Role: server
                Vlan: storage
                Mode: trunk
        """)
        assert report.passed
        assert warnings(report) == ["Vlan, Mode ignored for role server"]
        assert registry.entries("PortRoles")[0].vlan is None

    def test_duplicate_port(self):
        """A port may have one row only."""
        _, report = validate("""
            PortRoles:
              - Module: 1
                Port: 5
                Role: server
              - Module: 1
                Port: 5
                Role: uplink
        """)
        assert errors(report) == ["duplicate port '1/5' (first defined by entry #1)"]


class TestPortChannels:
    """Tests for port channel pairs."""

    def test_valid_channel(self):
        """A channel pair over two ports."""
        registry, report = validate("""
            PortChannels:
              - NameA: up-A
                IdA: 1
                NameB: up-B
                IdB: 2
                Module: 1
                Port1: 31
                Port2: 32
        """)
        assert report.passed
        [channel] = registry.entries("PortChannels")
        assert channel.ports == (31, 32)
        assert channel.for_fabric(FabricId.B) == ("up-B", 2)

    def test_names_ids_ports_must_differ(self):
        """Names, ids and member ports must be distinct."""
        _, report = validate("""
            PortChannels:
              - NameA: up
                IdA: 7
                NameB: up
                IdB: 7
                Module: 1
                Port1: 31
                Port2: 31
        """)
        assert errors(report) == [
            "NameA and NameB must differ, both are 'up'",
            "IdA and IdB must differ, both are 7",
            "Port1 and Port2 must be different ports, both are 31",
        ]

    def test_id_range(self):
        """Channel ids run 1-256."""
        _, report = validate("""
            PortChannels:
              - NameA: up-A
                IdA: 257
                NameB: up-B
                IdB: 2
                Module: 2
                Port1: 1
                Port2: 2
        """)
        assert errors(report) == ["IdA: 257 is outside 1-256"]

    def test_member_port_shared_between_channels(self):
        """A port can belong to one channel only."""
        _, report = validate("""
            PortChannels:
              - NameA: one-A
                IdA: 1
                NameB: one-B
                IdB: 2
                Module: 1
                Port1: 29
                Port2: 30
              - NameA: two-A
                IdA: 3
                NameB: two-B
                IdB: 4
                Module: 1
                Port1: 30
                Port2: 31
        """)
        assert errors(report) == ["duplicate member port '1/30' (first defined by entry #1)"]


class TestBootPolicies:
    """Tests for boot policies and their device lists."""

    def test_devices(self):
        """Devices keep their list order."""
        registry, report = validate("""
            BootPolicies:
              - Name: san
                Mode: UEFI
                Devices:
                  - Type: local
                    Device1: cdrom
                  - Type: storage
                    Device1: fc0
                    Device2: fc1
                    Fabric: B
                    Target1: 50:00:00:00:00:00:00:0a
                    Target2: 50:00:00:00:00:00:00:0b
                    Lun: 3
        """)
        assert report.passed
        [policy] = registry.entries("BootPolicies")
        assert policy.mode == "uefi"
        local, storage = policy.devices
        assert (local.type, local.device1) == (BootDeviceType.LOCAL, LocalMedia.CDROM.value)
        assert storage.fabric is FabricId.B
        assert storage.target1 == "50:00:00:00:00:00:00:0A"
        assert storage.lun == 3

    def test_at_least_one_device(self):
        """A policy without devices is rejected."""
        _, report = validate("""
            BootPolicies:
              - Name: empty
        """)
        assert errors(report) == ["at least one boot device is required"]

    def test_local_device_takes_no_second_device(self):
        """Device2 is meaningless for local media."""
        _, report = validate("""
            BootPolicies:
              - Name: local
                Devices:
                  - Type: local
                    Device1: localdisk
                    Device2: cdrom
        """)
        [record] = report.errors
        assert record.entry == "local > Devices#1"
        assert record.message == "a local boot device takes no Device2"

    def test_device_kind_once(self):
        """The same device kind twice is rejected."""
        _, report = validate("""
            BootPolicies:
              - Name: pxe
                Devices:
                  - Type: network
                    Device1: eth0
                  - Type: network
                    Device1: eth1
        """)
        assert errors(report) == ["boot device 'network' is listed more than once"]

    def test_second_device_needs_fabric(self):
        """A second interface needs a preferred fabric."""
        _, report = validate("""
            BootPolicies:
              - Name: pxe
                Devices:
                  - Type: network
                    Device1: eth0
                    Device2: eth1
        """)
        assert errors(report) == ["Fabric (A or B) is required when Device2 is given"]

    def test_target_format(self):
        """Targets are WWNs."""
        _, report = validate("""
            BootPolicies:
              - Name: san
                Devices:
                  - Type: storage
                    Device1: fc0
                    Target1: 50:00:00:00
        """)
        assert errors(report)[0].startswith("Target1: ")

    def test_network_device_ignores_targets(self):
        """Storage attributes on a network device are warnings."""
        registry, report = validate("""
            BootPolicies:
              - Name: pxe
                Devices:
                  - Type: network
                    Device1: eth0
                    Lun: 1
        """)
        assert report.passed
        assert warnings(report) == ["Lun ignored for a network boot device"]
        assert registry.entries("BootPolicies")[0].devices[0].fabric is FabricId.A


class TestProfiles:
    """Tests for profile templates and instances."""

    def test_profile_template(self):
        """Policies, pools and interfaces are collected."""
        registry, report = validate("""
            ProfileTemplates:
              - Name: esx
                Type: initial-template
                BootPolicy: pxe
                StatsPolicy: default
                UuidPool: U
                Vnics:
                  - Name: eth0
                    Template: eth0-A
                    AdapterPolicy: VMWare
                Vhbas:
                  - Name: fc0
                    Template: fc0-A
        """)
        assert report.passed
        [template] = registry.entries("ProfileTemplates")
        assert template.policies == {"boot": "pxe", "stats": "default"}
        assert [v.adapter_policy for v in template.vnics] == ["VMWare"]
        assert [v.name for v in template.vhbas] == ["fc0"]

    def test_interface_names_unique(self):
        """Two vNICs with one name are rejected."""
        _, report = validate("""
            ProfileTemplates:
              - Name: esx
                Vnics:
                  - Name: eth0
                    Template: a
                  - Name: eth0
                    Template: b
        """)
        assert errors(report) == ["interface name 'eth0' is used more than once"]

    def test_interface_template_required(self):
        """A vHBA needs its template."""
        _, report = validate("""
            ProfileTemplates:
              - Name: esx
                Vhbas:
                  - Name: fc0
        """)
        [record] = report.errors
        assert record.entry == "esx > Vhbas#1"

    def test_template_without_interfaces_warns(self):
        """A template with no interfaces is suspicious, not wrong."""
        _, report = validate("""
            ProfileTemplates:
              - Name: bare
        """)
        assert report.passed
        assert warnings(report) == ["template defines no vNICs or vHBAs"]

    @pytest.mark.parametrize("row", ["- Name: esx-01", "- Template: esx"])
    def test_instance_requires_name_and_template(self, row):
        """Instances need both a name and a template."""
        _, report = validate(f"ProfileInstances:\n  {row}\n")
        assert len(report.errors) == 1
        assert report.errors[0].severity == Severity.ERROR
