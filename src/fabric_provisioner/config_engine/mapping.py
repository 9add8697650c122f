"""Group generator: turns validated entries into causal groups of managed objects.

A causal group is the unit the orchestrator issues and the unit of failure:
its objects go out in order, parent before child, and the first rejected call
stops the rest of the group. Independent fabric sides (one VLAN per fabric,
one port per fabric) are separate groups.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from ..fabric.base import ROOT_ORG, ManagedObject
from .schema import (
    BOOT_POLICIES,
    ORGANIZATIONS,
    POLICIES,
    POOLS,
    PORT_CHANNELS,
    PORT_ROLES,
    PROFILE_INSTANCES,
    PROFILE_TEMPLATES,
    VHBA_TEMPLATES,
    VLANS,
    VNIC_TEMPLATES,
    VSANS,
    BootDevice,
    BootDeviceType,
    BootPath,
    BootPolicyDefinition,
    FabricId,
    LocalMedia,
    NetworkSegment,
    OrganizationDefinition,
    PolicyDefinition,
    PolicyKind,
    PoolDefinition,
    PoolKind,
    PortChannelDefinition,
    PortRole,
    PortRow,
    ProfileInstance,
    ProfileTemplate,
    TemplateDefinition,
    TemplateKind,
)

FABRICS = (FabricId.A, FabricId.B)

# Sections whose objects live in the fabric tree rather than under an organization
FABRIC_SECTIONS = (VLANS, VSANS, PORT_ROLES, PORT_CHANNELS)


@dataclass
class CausalGroup:
    """Ordered objects that must be issued together."""
    section: str
    label: str
    objects: list[ManagedObject] = field(default_factory=list)

    def add(self, class_id: str, dn: str, **properties: Any) -> ManagedObject:
        obj = ManagedObject(class_id, dn, properties)
        self.objects.append(obj)
        return obj

    @property
    def dns(self) -> list[str]:
        return [obj.dn for obj in self.objects]


def _flag(value: bool) -> str:
    return "yes" if value else "no"


def entry_label(section: str, entity: Any) -> str:
    """Identity of an entry as used in logs and outcomes."""
    if section == PORT_ROLES:
        return f"port {entity.module}/{entity.port}"
    if section == PORT_CHANNELS:
        return f"{entity.name_a}/{entity.name_b}"
    if section in (POOLS, POLICIES):
        return f"{entity.kind.value} {entity.name}"
    return entity.name


def entry_org(section: str, entity: Any) -> Optional[str]:
    """Organization an entry must be created in; None for fabric-level objects."""
    if section in FABRIC_SECTIONS:
        return None
    if section == ORGANIZATIONS:
        return ROOT_ORG
    return entity.org


# --- Organizations ---

def organization_groups(org: OrganizationDefinition, base: str) -> list[CausalGroup]:
    group = CausalGroup(ORGANIZATIONS, org.name)
    group.add("orgOrg", f"{base}/org-{org.name}", name=org.name, descr=org.description)
    return [group]


# --- Pools ---

# kind -> (pool class, dn prefix, block class)
POOL_CLASSES = {
    PoolKind.MAC: ("macpoolPool", "mac-pool", "macpoolBlock"),
    PoolKind.UUID: ("uuidpoolPool", "uuid-pool", "uuidpoolBlock"),
    PoolKind.WWNN: ("fcpoolInitiators", "wwn-pool", "fcpoolBlock"),
    PoolKind.WWPN: ("fcpoolInitiators", "wwn-pool", "fcpoolBlock"),
    PoolKind.IP: ("ippoolPool", "ip-pool", "ippoolBlock"),
}

WWN_PURPOSE = {
    PoolKind.WWNN: "node-wwn-assignment",
    PoolKind.WWPN: "port-wwn-assignment",
}


def pool_groups(pool: PoolDefinition, base: str) -> list[CausalGroup]:
    """Pool and its single block, in one group."""
    pool_class, prefix, block_class = POOL_CLASSES[pool.kind]
    group = CausalGroup(POOLS, entry_label(POOLS, pool))

    properties = {"name": pool.name, "descr": pool.description, "assignmentOrder": pool.order.value}
    if pool.kind == PoolKind.UUID:
        properties["prefix"] = pool.prefix
    elif pool.kind in WWN_PURPOSE:
        properties["purpose"] = WWN_PURPOSE[pool.kind]
    parent = group.add(pool_class, f"{base}/{prefix}-{pool.name}", **properties)

    block = {"from": pool.start, "to": pool.end}
    if pool.kind == PoolKind.IP:
        block.update(subnet=pool.netmask, defGw=pool.gateway)
    group.add(block_class, f"{parent.dn}/block-{pool.start}-{pool.end}", **block)
    return [group]


# --- Network segments ---

def _segment_dn(cloud: str, fabric: Optional[FabricId], name: str) -> str:
    if fabric is None:
        return f"fabric/{cloud}/net-{name}"
    return f"fabric/{cloud}/{fabric.value}/net-{name}"


def _segment_label(segment: NetworkSegment, fabric: Optional[FabricId]) -> str:
    return segment.name if fabric is None else f"{segment.name} ({fabric.value})"


def vlan_groups(vlan: NetworkSegment, base: str = "") -> list[CausalGroup]:
    """One group per fabric the VLAN lives on, each with its own tag."""
    groups = []
    for fabric, tag in vlan.tags_by_fabric().items():
        group = CausalGroup(VLANS, _segment_label(vlan, fabric))
        group.add(
            "fabricVlan",
            _segment_dn("lan", fabric, vlan.name),
            name=vlan.name,
            id=str(tag),
            defaultNet=_flag(vlan.default_net),
        )
        groups.append(group)
    return groups


def vsan_groups(vsan: NetworkSegment, base: str = "") -> list[CausalGroup]:
    groups = []
    for fabric, tag in vsan.tags_by_fabric().items():
        fcoe = vsan.fcoe_vlan_b if fabric is FabricId.B and vsan.fcoe_vlan_b else vsan.fcoe_vlan
        group = CausalGroup(VSANS, _segment_label(vsan, fabric))
        group.add(
            "fabricVsan",
            _segment_dn("san", fabric, vsan.name),
            name=vsan.name,
            id=str(tag),
            fcoeVlan=str(fcoe),
        )
        groups.append(group)
    return groups


# --- Policies ---

def _power(policy: PolicyDefinition, group: CausalGroup, base: str) -> None:
    group.add("powerPolicy", f"{base}/power-policy-{policy.name}", name=policy.name,
              descr=policy.description, prio=policy.mode)


def _scrub(policy: PolicyDefinition, group: CausalGroup, base: str) -> None:
    group.add("computeScrubPolicy", f"{base}/scrub-{policy.name}", name=policy.name,
              descr=policy.description, diskScrub=policy.mode,
              biosSettingsScrub=policy.settings["BiosScrub"])


def _maintenance(policy: PolicyDefinition, group: CausalGroup, base: str) -> None:
    group.add("lsmaintMaintPolicy", f"{base}/maint-{policy.name}", name=policy.name,
              descr=policy.description, uptimeDisr=policy.mode)


def _disk(policy: PolicyDefinition, group: CausalGroup, base: str) -> None:
    group.add("storageLocalDiskConfigPolicy", f"{base}/local-disk-config-{policy.name}",
              name=policy.name, descr=policy.description, mode=policy.mode,
              protectConfig=policy.settings["Protect"])


def _bios(policy: PolicyDefinition, group: CausalGroup, base: str) -> None:
    profile = group.add("biosVProfile", f"{base}/bios-prof-{policy.name}", name=policy.name,
                        descr=policy.description,
                        rebootOnUpdate=policy.settings["RebootOnUpdate"])
    group.add("biosVfQuietBoot", f"{profile.dn}/Quiet-Boot", vpQuietBoot=policy.mode)


def _placement(policy: PolicyDefinition, group: CausalGroup, base: str) -> None:
    profile = group.add("fabricVConProfile", f"{base}/vcon-profile-{policy.name}",
                        name=policy.name, descr=policy.description)
    group.add("fabricVCon", f"{profile.dn}/vcon-1", id="1", select=policy.mode)


POLICY_BUILDERS: dict[PolicyKind, Callable[[PolicyDefinition, CausalGroup, str], None]] = {
    PolicyKind.POWER: _power,
    PolicyKind.SCRUB: _scrub,
    PolicyKind.MAINTENANCE: _maintenance,
    PolicyKind.DISK: _disk,
    PolicyKind.BIOS: _bios,
    PolicyKind.PLACEMENT: _placement,
}


def policy_groups(policy: PolicyDefinition, base: str) -> list[CausalGroup]:
    group = CausalGroup(POLICIES, entry_label(POLICIES, policy))
    POLICY_BUILDERS[policy.kind](policy, group, base)
    return [group]


# --- Interface templates ---

def template_groups(template: TemplateDefinition, base: str) -> list[CausalGroup]:
    """Template plus its VLAN or VSAN binding."""
    properties = {
        "name": template.name,
        "descr": template.description,
        "switchId": template.fabric,
        "templType": template.update_mode.value,
        "identPoolName": template.pool or "",
        "qosPolicyName": template.qos or "",
    }

    if template.kind == TemplateKind.NETWORK:
        group = CausalGroup(VNIC_TEMPLATES, template.name)
        parent = group.add("vnicLanConnTempl", f"{base}/lan-conn-templ-{template.name}",
                           mtu=str(template.mtu), **properties)
        group.add("vnicEtherIf", f"{parent.dn}/if-{template.segment}", name=template.segment,
                  defaultNet=_flag(template.native))
    else:
        group = CausalGroup(VHBA_TEMPLATES, template.name)
        parent = group.add("vnicSanConnTempl", f"{base}/san-conn-templ-{template.name}", **properties)
        group.add("vnicFcIf", f"{parent.dn}/if-default", name=template.segment)
    return [group]


# --- Ports ---

def _port_suffix(module: int, port: int) -> str:
    return f"slot-{module}-port-{port}"


def port_groups(row: PortRow, base: str = "") -> list[CausalGroup]:
    """One group per fabric; an unset port produces nothing."""
    if row.role == PortRole.UNSET:
        return []

    suffix = _port_suffix(row.module, row.port)
    ids = {"slotId": str(row.module), "portId": str(row.port)}
    groups = []
    for fabric in FABRICS:
        group = CausalGroup(PORT_ROLES, f"{entry_label(PORT_ROLES, row)} ({fabric.value})")
        f = fabric.value
        if row.role == PortRole.SERVER:
            group.add("fabricDceSwSrvEp", f"fabric/server/sw-{f}/{suffix}", **ids)
        elif row.role == PortRole.UPLINK:
            group.add("fabricEthLanEp", f"fabric/lan/{f}/phys-{suffix}", **ids)
        elif row.role == PortRole.FCOE:
            group.add("fabricFcoeSanEp", f"fabric/san/{f}/phys-{suffix}", **ids)
        elif row.role == PortRole.APPLIANCE:
            port = group.add("fabricEthEstcEp", f"fabric/eth-estc/{f}/phys-{suffix}",
                             portMode=row.mode.value, prio=row.qos, **ids)
            group.add("fabricEthVlanPortEp", f"{port.dn}/vlan-{row.vlan}", name=row.vlan,
                      isNative=_flag(row.native))
        groups.append(group)
    return groups


def port_channel_groups(channel: PortChannelDefinition, base: str = "") -> list[CausalGroup]:
    """One channel per fabric, each with both member ports."""
    groups = []
    for fabric in FABRICS:
        name, channel_id = channel.for_fabric(fabric)
        group = CausalGroup(PORT_CHANNELS, f"{name} ({fabric.value})")
        pc = group.add("fabricEthLanPc", f"fabric/lan/{fabric.value}/pc-{channel_id}",
                       name=name, portId=str(channel_id))
        for port in channel.ports:
            group.add("fabricEthLanPcEp", f"{pc.dn}/ep-{_port_suffix(channel.module, port)}",
                      slotId=str(channel.module), portId=str(port))
        groups.append(group)
    return groups


# --- Boot policies ---

LOCAL_MEDIA_RN = {
    LocalMedia.CDROM: ("lsbootVirtualMedia", "read-only-vm", "read-only"),
    LocalMedia.FLOPPY: ("lsbootVirtualMedia", "read-write-vm", "read-write"),
}


def boot_paths(device: BootDevice) -> list[BootPath]:
    """Primary and secondary paths of a network or storage boot device.

    Device1 is the fabric-A side, Device2 the fabric-B side. With preferred
    fabric B the two paths swap roles. Without Device2 only a primary path
    exists.
    """
    side_a = (device.device1, FabricId.A, device.target1)
    if device.device2 is None:
        return [BootPath("primary", *side_a)]

    side_b = (device.device2, FabricId.B, device.target2)
    if device.fabric is FabricId.B:
        side_a, side_b = side_b, side_a
    return [BootPath("primary", *side_a), BootPath("secondary", *side_b)]


def _boot_device(group: CausalGroup, policy_dn: str, device: BootDevice, order: int) -> None:
    if device.type == BootDeviceType.LOCAL:
        media = LocalMedia(device.device1)
        if media == LocalMedia.LOCALDISK:
            storage = group.add("lsbootStorage", f"{policy_dn}/storage", order=str(order))
            group.add("lsbootLocalStorage", f"{storage.dn}/local-storage")
        else:
            class_id, rn, access = LOCAL_MEDIA_RN[media]
            group.add(class_id, f"{policy_dn}/{rn}", order=str(order), access=access)
        return

    if device.type == BootDeviceType.NETWORK:
        lan = group.add("lsbootLan", f"{policy_dn}/lan", order=str(order), prot="pxe")
        for path in boot_paths(device):
            group.add("lsbootLanImagePath", f"{lan.dn}/path-{path.role}", type=path.role,
                      vnicName=path.interface)
        return

    san = group.add("lsbootSan", f"{policy_dn}/san", order=str(order))
    for path in boot_paths(device):
        image = group.add("lsbootSanCatSanImage", f"{san.dn}/sanimg-{path.role}", type=path.role,
                          vnicName=path.interface)
        if path.target:
            group.add("lsbootSanCatSanImagePath", f"{image.dn}/path-{path.role}", type=path.role,
                      wwn=path.target, lun=str(device.lun))


def boot_policy_groups(policy: BootPolicyDefinition, base: str) -> list[CausalGroup]:
    """Policy and every device object; list position is boot order."""
    group = CausalGroup(BOOT_POLICIES, policy.name)
    parent = group.add(
        "lsbootPolicy",
        f"{base}/boot-policy-{policy.name}",
        name=policy.name,
        descr=policy.description,
        bootMode=policy.mode,
        rebootOnUpdate=_flag(policy.reboot_on_update),
        enforceVnicName=_flag(policy.enforce_names),
    )
    for order, device in enumerate(policy.devices, start=1):
        _boot_device(group, parent.dn, device, order)
    return [group]


# --- Service profiles ---

# policies key -> lsServer property
PROFILE_POLICY_PROPERTIES = {
    "boot": "bootPolicyName",
    "disk": "localDiskPolicyName",
    "power": "powerPolicyName",
    "scrub": "scrubPolicyName",
    "maintenance": "maintPolicyName",
    "stats": "statsPolicyName",
    "firmware": "hostFwPolicyName",
    "bios": "biosProfileName",
    "placement": "vconProfileName",
}


def profile_template_groups(template: ProfileTemplate, base: str) -> list[CausalGroup]:
    """Template, node identity and every vNIC/vHBA in one group.

    vNICs take adapter order 1..n, vHBAs continue after them.
    """
    group = CausalGroup(PROFILE_TEMPLATES, template.name)
    properties = {
        "name": template.name,
        "descr": template.description,
        "type": template.type.value,
        "identPoolName": template.uuid_pool or "",
    }
    for key, name in template.policies.items():
        properties[PROFILE_POLICY_PROPERTIES[key]] = name
    server = group.add("lsServer", f"{base}/ls-{template.name}", **properties)

    if template.wwnn_pool or template.vhbas:
        group.add("vnicFcNode", f"{server.dn}/fc-node", identPoolName=template.wwnn_pool or "")

    order = 0
    for vnic in template.vnics:
        order += 1
        group.add("vnicEther", f"{server.dn}/ether-{vnic.name}", name=vnic.name,
                  nwTemplName=vnic.template, adaptorProfileName=vnic.adapter_policy or "",
                  order=str(order))
    for vhba in template.vhbas:
        order += 1
        group.add("vnicFc", f"{server.dn}/fc-{vhba.name}", name=vhba.name,
                  nwTemplName=vhba.template, order=str(order))
    return [group]


def profile_instance_groups(instance: ProfileInstance, base: str) -> list[CausalGroup]:
    group = CausalGroup(PROFILE_INSTANCES, instance.name)
    group.add("lsServer", f"{base}/ls-{instance.name}", name=instance.name,
              descr=instance.description, srcTemplName=instance.template, type="instance")
    return [group]


GROUP_BUILDERS: dict[str, Callable[[Any, str], list[CausalGroup]]] = {
    ORGANIZATIONS: organization_groups,
    POOLS: pool_groups,
    VLANS: vlan_groups,
    VSANS: vsan_groups,
    POLICIES: policy_groups,
    PORT_ROLES: port_groups,
    PORT_CHANNELS: port_channel_groups,
    VNIC_TEMPLATES: template_groups,
    VHBA_TEMPLATES: template_groups,
    BOOT_POLICIES: boot_policy_groups,
    PROFILE_TEMPLATES: profile_template_groups,
    PROFILE_INSTANCES: profile_instance_groups,
}


def build_groups(section: str, entity: Any, base: str = "") -> list[CausalGroup]:
    """
    Generate the causal groups of one entry.

    Args:
        section: Section the entry belongs to
        entity: Validated entry
        base: Resolved organization dn; ignored for fabric-level sections

    Returns:
        Groups in issue order
    """
    if section not in GROUP_BUILDERS:
        raise ValueError(f"Unsupported section: {section}")
    return GROUP_BUILDERS[section](entity, base)
