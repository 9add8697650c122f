"""Cross-section reference checks.

Runs on the frozen registry after every section has been validated. A name
that points into a present section must be defined there. A name that points
into an absent section cannot be checked here and is left to the fabric with a
warning.
"""
from dataclasses import dataclass
from typing import Iterator, Optional

from ..fabric.base import ROOT_ORG
from .registry import SectionRegistry
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
    BootDeviceType,
    ErrorRecord,
    PolicyKind,
    PoolKind,
    PortRole,
    Severity,
)

# Profile template policies key -> policy kind; stats and firmware have no section
PROFILE_POLICY_KINDS = {
    "disk": PolicyKind.DISK,
    "power": PolicyKind.POWER,
    "scrub": PolicyKind.SCRUB,
    "maintenance": PolicyKind.MAINTENANCE,
    "bios": PolicyKind.BIOS,
    "placement": PolicyKind.PLACEMENT,
}


@dataclass(frozen=True)
class Reference:
    """A name in one entry that must resolve in another section."""
    section: str
    entry: str
    attribute: str
    target: str
    name: str
    kind: Optional[PoolKind | PolicyKind] = None

    @property
    def described_target(self) -> str:
        if self.kind is None:
            return self.target
        return f"{self.target} ({self.kind.value})"


def _org_reference(section: str, entry: str, org: str) -> Iterator[Reference]:
    if org != ROOT_ORG:
        yield Reference(section, entry, "Org", ORGANIZATIONS, org)


def collect_references(registry: SectionRegistry) -> Iterator[Reference]:
    """Every cross-section name used by the registry's entries."""
    for section in (POOLS, POLICIES, VNIC_TEMPLATES, VHBA_TEMPLATES, BOOT_POLICIES,
                    PROFILE_TEMPLATES, PROFILE_INSTANCES):
        for entity in registry.entries(section) if registry.is_present(section) else ():
            yield from _org_reference(section, entity.name, entity.org)

    if registry.is_present(VNIC_TEMPLATES):
        for template in registry.entries(VNIC_TEMPLATES):
            yield Reference(VNIC_TEMPLATES, template.name, "Vlan", VLANS, template.segment)
            if template.pool:
                yield Reference(VNIC_TEMPLATES, template.name, "MacPool", POOLS, template.pool, PoolKind.MAC)

    if registry.is_present(VHBA_TEMPLATES):
        for template in registry.entries(VHBA_TEMPLATES):
            yield Reference(VHBA_TEMPLATES, template.name, "Vsan", VSANS, template.segment)
            if template.pool:
                yield Reference(VHBA_TEMPLATES, template.name, "WwpnPool", POOLS, template.pool, PoolKind.WWPN)

    if registry.is_present(PORT_ROLES):
        for row in registry.entries(PORT_ROLES):
            if row.role == PortRole.APPLIANCE:
                yield Reference(PORT_ROLES, f"port {row.module}/{row.port}", "Vlan", VLANS, row.vlan)

    if registry.is_present(PROFILE_TEMPLATES):
        for template in registry.entries(PROFILE_TEMPLATES):
            yield from _profile_template_references(template)

    if registry.is_present(PROFILE_INSTANCES):
        for instance in registry.entries(PROFILE_INSTANCES):
            yield Reference(PROFILE_INSTANCES, instance.name, "Template", PROFILE_TEMPLATES, instance.template)


def _profile_template_references(template) -> Iterator[Reference]:
    entry = template.name
    for key, name in template.policies.items():
        if key == "boot":
            yield Reference(PROFILE_TEMPLATES, entry, "BootPolicy", BOOT_POLICIES, name)
        elif key in PROFILE_POLICY_KINDS:
            kind = PROFILE_POLICY_KINDS[key]
            yield Reference(PROFILE_TEMPLATES, entry, f"{key.capitalize()}Policy", POLICIES, name, kind)

    if template.uuid_pool:
        yield Reference(PROFILE_TEMPLATES, entry, "UuidPool", POOLS, template.uuid_pool, PoolKind.UUID)
    if template.wwnn_pool:
        yield Reference(PROFILE_TEMPLATES, entry, "WwnnPool", POOLS, template.wwnn_pool, PoolKind.WWNN)
    for vnic in template.vnics:
        yield Reference(PROFILE_TEMPLATES, entry, f"Vnics[{vnic.name}].Template", VNIC_TEMPLATES, vnic.template)
    for vhba in template.vhbas:
        yield Reference(PROFILE_TEMPLATES, entry, f"Vhbas[{vhba.name}].Template", VHBA_TEMPLATES, vhba.template)


def check_references(registry: SectionRegistry) -> list[ErrorRecord]:
    """Resolve every reference against the registry.

    Returns:
        Errors for names missing from a present section, warnings for names
        that point into an undefined section, plus the boot interface and
        port channel membership findings
    """
    records: list[ErrorRecord] = []
    for ref in collect_references(registry):
        if not registry.is_present(ref.target):
            records.append(
                ErrorRecord(
                    ref.section,
                    ref.entry,
                    f"{ref.attribute} '{ref.name}' not checked, {ref.target} is undefined "
                    f"(deferred to the fabric)",
                    Severity.WARNING,
                )
            )
        elif ref.name not in registry.names(ref.target, ref.kind):
            records.append(
                ErrorRecord(
                    ref.section,
                    ref.entry,
                    f"{ref.attribute} '{ref.name}' is not defined in {ref.described_target}",
                )
            )

    records.extend(check_boot_interfaces(registry))
    records.extend(check_channel_members(registry))
    return records


def check_boot_interfaces(registry: SectionRegistry) -> list[ErrorRecord]:
    """Compare boot device interface names with the templates using the policy.

    The fabric enforces these names at association time, so a miss is only a
    warning here.
    """
    if not (registry.is_present(BOOT_POLICIES) and registry.is_present(PROFILE_TEMPLATES)):
        return []

    policies = {policy.name: policy for policy in registry.entries(BOOT_POLICIES)}
    records = []
    for template in registry.entries(PROFILE_TEMPLATES):
        policy = policies.get(template.policies.get("boot", ""))
        if policy is None or not policy.enforce_names:
            continue

        available = {
            BootDeviceType.NETWORK: {vnic.name for vnic in template.vnics},
            BootDeviceType.STORAGE: {vhba.name for vhba in template.vhbas},
        }
        for device in policy.devices:
            if device.type not in available:
                continue
            for interface in (device.device1, device.device2):
                if interface and interface not in available[device.type]:
                    records.append(
                        ErrorRecord(
                            PROFILE_TEMPLATES,
                            template.name,
                            f"boot policy '{policy.name}' boots from {device.type.value} "
                            f"interface '{interface}' which the template does not define",
                            Severity.WARNING,
                        )
                    )
    return records


def check_channel_members(registry: SectionRegistry) -> list[ErrorRecord]:
    """Port channel members must not carry a non-uplink role."""
    if not (registry.is_present(PORT_CHANNELS) and registry.is_present(PORT_ROLES)):
        return []

    roles = {(row.module, row.port): row.role for row in registry.entries(PORT_ROLES)}
    records = []
    for channel in registry.entries(PORT_CHANNELS):
        for port in channel.ports:
            role = roles.get((channel.module, port), PortRole.UNSET)
            if role not in (PortRole.UNSET, PortRole.UPLINK):
                records.append(
                    ErrorRecord(
                        PORT_CHANNELS,
                        channel.name_a,
                        f"member port {channel.module}/{port} has role {role.value}, "
                        f"expected uplink",
                    )
                )
    return records
