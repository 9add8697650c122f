"""Pre-flight validation for provisioning documents.

Catches every malformed entry before any fabric communication. Each section is
read once, its rows are turned into typed entities by the object validators
below, and every finding lands in one ValidationReport.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from ..config.document import ConfigDocument
from ..config.endpoint import ENDPOINT_SECTION
from . import fields
from .parser import EntryReader, read_section
from .references import check_references
from .registry import RegistryBuilder, SectionRegistry
from .report import ValidationReport
from .schema import (
    BOOT_POLICIES,
    MODULE_PORTS,
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
    AssignmentOrder,
    BootDevice,
    BootDeviceType,
    BootPolicyDefinition,
    ErrorRecord,
    FabricAffinity,
    FabricId,
    InterfaceInstance,
    LocalMedia,
    NetworkSegment,
    OrganizationDefinition,
    PolicyDefinition,
    PolicyKind,
    PoolDefinition,
    PoolKind,
    PortChannelDefinition,
    PortMode,
    PortRole,
    PortRow,
    ProfileInstance,
    ProfileTemplate,
    TemplateDefinition,
    TemplateKind,
    UpdateMode,
)

logger = logging.getLogger(__name__)

COMMON_ATTRIBUTES = ("Name", "Org", "Description")
QOS_CLASSES = ("best-effort", "bronze", "silver", "gold", "platinum", "fc")
MAX_VSAN_ID = 4093
MAX_CHANNEL_ID = 256
MAX_LUN = 255

# Profile template attribute -> policies key
PROFILE_POLICY_ATTRIBUTES = {
    "BootPolicy": "boot",
    "DiskPolicy": "disk",
    "PowerPolicy": "power",
    "ScrubPolicy": "scrub",
    "MaintenancePolicy": "maintenance",
    "StatsPolicy": "stats",
    "FirmwarePolicy": "firmware",
    "BiosPolicy": "bios",
    "PlacementPolicy": "placement",
}


# --- Pools ---

@dataclass(frozen=True)
class PoolFormat:
    """Value format of a pool kind and how its bounds are ordered."""
    check: Callable[[str], fields.FieldCheck]
    key: Callable[[str], Any]
    extra: tuple[str, ...] = ()


def _hex_value(value: str) -> int:
    return int(value.replace(":", "").replace("-", ""), 16)


POOL_FORMATS = {
    # MAC blocks compare as hex strings
    PoolKind.MAC: PoolFormat(lambda v: fields.is_colon_hex(v, 6), lambda v: v.upper()),
    PoolKind.WWNN: PoolFormat(lambda v: fields.is_colon_hex(v, 8), _hex_value),
    PoolKind.WWPN: PoolFormat(lambda v: fields.is_colon_hex(v, 8), _hex_value),
    PoolKind.UUID: PoolFormat(fields.is_uuid_suffix, _hex_value, extra=("Prefix",)),
    PoolKind.IP: PoolFormat(
        fields.is_dotted_quad,
        fields.dotted_quad_value,
        extra=("Gateway", "Netmask"),
    ),
}


def validate_organization(reader: EntryReader) -> Optional[OrganizationDefinition]:
    name = reader.name()
    description = reader.text("Description", default="")
    if name is not None and name.lower() == "root":
        reader.error("'root' always exists and cannot be created")
    reader.warn_unknown(("Name", "Description"))

    if reader.failed:
        return None
    return OrganizationDefinition(name=name, description=description)


def validate_pool(reader: EntryReader) -> Optional[PoolDefinition]:
    """Validate a pool row.

    From and To must both match the kind's format and From must order strictly
    below To.
    """
    kind = reader.choice("Kind", PoolKind, required=True)
    name = reader.name()
    org = reader.org()
    order = reader.choice("Order", AssignmentOrder, default=AssignmentOrder.DEFAULT)
    description = reader.text("Description", default="")
    start = reader.text("From", required=True)
    end = reader.text("To", required=True)

    if kind is None:
        return None

    pool_format = POOL_FORMATS[kind]
    start_ok = start is not None and reader.check("From", pool_format.check(start))
    end_ok = end is not None and reader.check("To", pool_format.check(end))
    if start_ok and end_ok and pool_format.key(start) >= pool_format.key(end):
        reader.error(f"From {start} must be lower than To {end}")

    prefix = "derived"
    gateway = netmask = None
    if kind == PoolKind.UUID:
        prefix = reader.text("Prefix", default="derived")
        reader.check("Prefix", fields.is_uuid_prefix(prefix))
    elif kind == PoolKind.IP:
        gateway = reader.text("Gateway", required=True)
        netmask = reader.text("Netmask", required=True)
        if gateway is not None:
            reader.check("Gateway", fields.is_dotted_quad(gateway))
        if netmask is not None and reader.check("Netmask", fields.is_dotted_quad(netmask)):
            _check_netmask(reader, netmask)

    reader.warn_unknown(COMMON_ATTRIBUTES + ("Kind", "From", "To", "Order") + pool_format.extra)

    if reader.failed:
        return None

    if kind in (PoolKind.MAC, PoolKind.WWNN, PoolKind.WWPN):
        start, end = start.upper(), end.upper()
    return PoolDefinition(
        kind=kind,
        name=name,
        start=start,
        end=end,
        order=order,
        org=org,
        description=description,
        prefix=prefix,
        gateway=gateway,
        netmask=netmask,
    )


def _check_netmask(reader: EntryReader, netmask: str) -> None:
    bits = format(fields.dotted_quad_value(netmask), "032b")
    if "01" in bits:
        reader.error(f"Netmask: '{netmask}' is not a contiguous mask")


# --- Network segments ---

def validate_segment(reader: EntryReader, storage: bool = False) -> Optional[NetworkSegment]:
    """Validate a VLAN row, or a VSAN row when ``storage`` is set.

    Id is required for every affinity; a dual segment needs IdB as well.
    """
    name = reader.name()
    affinity = reader.choice("Fabric", FabricAffinity, default=FabricAffinity.COMMON)
    hi = MAX_VSAN_ID if storage else 4095

    tag = _segment_tag(reader, "Id", 1, hi, required=True, affinity=affinity)
    tag_b = _segment_tag(
        reader, "IdB", 1, hi, required=affinity == FabricAffinity.DUAL, affinity=affinity
    )
    if affinity is not None and affinity != FabricAffinity.DUAL and reader.has("IdB"):
        reader.warning(f"IdB is ignored for a {affinity.value} segment")

    known = ["Name", "Fabric", "Id", "IdB"]
    default_net = False
    fcoe_vlan = fcoe_vlan_b = None
    if storage:
        known += ["FcoeVlan", "FcoeVlanB"]
        fcoe_vlan = _segment_tag(reader, "FcoeVlan", 1, 4095, required=True, affinity=affinity)
        fcoe_vlan_b = _segment_tag(
            reader, "FcoeVlanB", 1, 4095, required=affinity == FabricAffinity.DUAL, affinity=affinity
        )
    else:
        known.append("Default")
        default_net = reader.flag("Default")
    reader.warn_unknown(known)

    if reader.failed:
        return None
    if affinity != FabricAffinity.DUAL:
        tag_b = fcoe_vlan_b = None
    return NetworkSegment(
        name=name,
        affinity=affinity,
        tag=tag,
        tag_b=tag_b,
        default_net=default_net,
        fcoe_vlan=fcoe_vlan,
        fcoe_vlan_b=fcoe_vlan_b,
    )


def _segment_tag(
    reader: EntryReader,
    attr: str,
    lo: int,
    hi: int,
    required: bool,
    affinity: Optional[FabricAffinity] = None,
) -> Optional[int]:
    if not reader.has(attr):
        if required and attr in reader.row:
            kind = f"a {affinity.value}" if affinity is not None else "this"
            reader.error(f"{attr}: tag may not be empty for {kind} segment")
        elif required:
            reader.error(f"missing required attribute {attr}")
        return None
    return reader.tag(attr, lo, hi)


# --- Policies ---

@dataclass(frozen=True)
class PolicyRule:
    """Primary setting of a policy kind plus its optional yes/no switches."""
    attribute: str
    choices: Optional[tuple[str, ...]]
    default: str
    switches: tuple[tuple[str, bool], ...] = ()


POLICY_RULES = {
    # power priority is numeric; choices=None selects the numeric check
    PolicyKind.POWER: PolicyRule("Priority", None, "no-cap"),
    PolicyKind.SCRUB: PolicyRule(
        "DiskScrub", ("yes", "no"), "no", switches=(("BiosScrub", False),)
    ),
    PolicyKind.MAINTENANCE: PolicyRule(
        "RebootPolicy", ("immediate", "user-ack", "timer-automatic"), "user-ack"
    ),
    PolicyKind.DISK: PolicyRule(
        "Mode",
        (
            "any-configuration",
            "no-local-storage",
            "no-raid",
            "raid-mirrored",
            "raid-striped",
            "raid-striped-parity",
            "raid-mirrored-striped",
        ),
        "any-configuration",
        switches=(("Protect", True),),
    ),
    PolicyKind.BIOS: PolicyRule(
        "QuietBoot",
        ("enabled", "disabled", "platform-default"),
        "platform-default",
        switches=(("RebootOnUpdate", False),),
    ),
    PolicyKind.PLACEMENT: PolicyRule(
        "Selection",
        ("all", "assigned-only", "exclude-dynamic", "exclude-unassigned"),
        "all",
    ),
}

POWER_PRIORITY_RANGE = (1, 10)
NO_CAP = "no-cap"


def validate_policy(reader: EntryReader) -> Optional[PolicyDefinition]:
    kind = reader.choice("Kind", PolicyKind, required=True)
    name = reader.name()
    org = reader.org()
    description = reader.text("Description", default="")
    if kind is None:
        return None

    rule = POLICY_RULES[kind]
    if rule.choices is None:
        mode = reader.text(rule.attribute, default=rule.default)
        if mode.lower() == NO_CAP:
            mode = NO_CAP
        else:
            lo, hi = POWER_PRIORITY_RANGE
            reader.check(rule.attribute, fields.is_int_in_range(mode, lo, hi))
    else:
        mode = reader.choice(rule.attribute, rule.choices, default=rule.default)

    settings = {}
    for attr, default in rule.switches:
        settings[attr] = "yes" if reader.flag(attr, default=default) else "no"

    reader.warn_unknown(
        COMMON_ATTRIBUTES + ("Kind", rule.attribute) + tuple(attr for attr, _ in rule.switches)
    )

    if reader.failed:
        return None
    return PolicyDefinition(
        kind=kind,
        name=name,
        mode=mode,
        org=org,
        description=description,
        settings=settings,
    )


# --- Interface templates ---

NETWORK_FABRICS = ("A", "B", "A-B", "B-A")
STORAGE_FABRICS = ("A", "B")
MTU_CHOICES = ("1500", "9000")


def validate_template(reader: EntryReader, kind: TemplateKind) -> Optional[TemplateDefinition]:
    """Validate a vNIC (network) or vHBA (storage) template row."""
    name = reader.name()
    org = reader.org()
    description = reader.text("Description", default="")
    qos = reader.name("Qos", required=False)
    update_mode = reader.choice("UpdateMode", UpdateMode, default=UpdateMode.INITIAL)

    known = COMMON_ATTRIBUTES + ("Fabric", "Qos", "UpdateMode")
    mtu = None
    native = False
    if kind == TemplateKind.NETWORK:
        fabric = reader.choice("Fabric", NETWORK_FABRICS, default="A")
        mtu = int(reader.choice("Mtu", MTU_CHOICES, default="1500"))
        pool = reader.name("MacPool", required=False)
        segment = reader.name("Vlan")
        native = reader.flag("Native")
        known += ("Mtu", "MacPool", "Vlan", "Native")
    else:
        fabric = reader.choice("Fabric", STORAGE_FABRICS, default="A")
        pool = reader.name("WwpnPool", required=False)
        segment = reader.name("Vsan")
        known += ("WwpnPool", "Vsan")
    reader.warn_unknown(known)

    if reader.failed:
        return None
    return TemplateDefinition(
        kind=kind,
        name=name,
        fabric=fabric,
        segment=segment,
        org=org,
        mtu=mtu,
        pool=pool,
        qos=qos,
        native=native,
        update_mode=update_mode,
        description=description,
    )


# --- Ports ---

APPLIANCE_ATTRIBUTES = ("Vlan", "Native", "Mode", "Qos")


def _port_number(reader: EntryReader, attr: str, module: Optional[int]) -> Optional[int]:
    """Port number checked against the port count of its module."""
    value = reader.text(attr, required=True)
    if value is None or module is None:
        return None
    hi = MODULE_PORTS[module]
    verdict = fields.is_int_in_range(value, 1, hi)
    if not verdict:
        reader.error(f"{attr}: {verdict.reason} (module {module} has {hi} ports)")
        return None
    return int(value)


def validate_port_row(reader: EntryReader) -> Optional[PortRow]:
    """Validate a port role row.

    Appliance ports need a VLAN and a trunk/access mode. Any other role
    ignores those attributes with a warning.
    """
    module = reader.choice("Module", [str(m) for m in MODULE_PORTS], required=True)
    module = int(module) if module is not None else None
    port = _port_number(reader, "Port", module)
    role = reader.choice("Role", PortRole, default=PortRole.UNSET)

    vlan = None
    mode = None
    native = False
    qos = "best-effort"
    if role == PortRole.APPLIANCE:
        vlan = reader.name("Vlan")
        mode = reader.choice("Mode", PortMode, required=True)
        native = reader.flag("Native")
        qos = reader.choice("Qos", QOS_CLASSES, default="best-effort")
    elif role is not None:
        ignored = [attr for attr in APPLIANCE_ATTRIBUTES if reader.has(attr)]
        if ignored:
            reader.warning(f"{', '.join(ignored)} ignored for role {role.value}")
    reader.warn_unknown(("Module", "Port", "Role") + APPLIANCE_ATTRIBUTES)

    if reader.failed:
        return None
    return PortRow(module=module, port=port, role=role, vlan=vlan, native=native, mode=mode, qos=qos)


def validate_port_channel(reader: EntryReader) -> Optional[PortChannelDefinition]:
    """Validate a port channel pair.

    Both names and both ids are required and must differ from each other, and
    the two member ports must be distinct ports of one module.
    """
    name_a = reader.name("NameA")
    name_b = reader.name("NameB")
    id_a = reader.integer("IdA", 1, MAX_CHANNEL_ID)
    id_b = reader.integer("IdB", 1, MAX_CHANNEL_ID)
    module = reader.choice("Module", [str(m) for m in MODULE_PORTS], required=True)
    module = int(module) if module is not None else None
    port1 = _port_number(reader, "Port1", module)
    port2 = _port_number(reader, "Port2", module)

    if name_a is not None and name_a == name_b:
        reader.error(f"NameA and NameB must differ, both are '{name_a}'")
    if id_a is not None and id_a == id_b:
        reader.error(f"IdA and IdB must differ, both are {id_a}")
    if port1 is not None and port1 == port2:
        reader.error(f"Port1 and Port2 must be different ports, both are {port1}")
    reader.warn_unknown(("NameA", "IdA", "NameB", "IdB", "Module", "Port1", "Port2"))

    if reader.failed:
        return None
    return PortChannelDefinition(
        name_a=name_a,
        id_a=id_a,
        name_b=name_b,
        id_b=id_b,
        module=module,
        ports=(port1, port2),
    )


# --- Boot policies ---

BOOT_MODES = ("legacy", "uefi")
BOOT_DEVICE_ATTRIBUTES = ("Type", "Device1", "Device2", "Fabric", "Target1", "Target2", "Lun")


def _boot_device(reader: EntryReader) -> Optional[BootDevice]:
    device_type = reader.choice("Type", BootDeviceType, required=True)
    reader.warn_unknown(BOOT_DEVICE_ATTRIBUTES)
    if device_type is None:
        return None

    if device_type == BootDeviceType.LOCAL:
        media = reader.choice("Device1", LocalMedia, required=True)
        if reader.has("Device2"):
            reader.error("a local boot device takes no Device2")
        ignored = [a for a in ("Fabric", "Target1", "Target2", "Lun") if reader.has(a)]
        if ignored:
            reader.warning(f"{', '.join(ignored)} ignored for a local boot device")
        if reader.failed:
            return None
        return BootDevice(type=device_type, device1=media.value)

    device1 = reader.name("Device1")
    device2 = reader.name("Device2", required=False)
    fabric = reader.choice("Fabric", FabricId)
    if device2 is not None and not reader.has("Fabric"):
        reader.error("Fabric (A or B) is required when Device2 is given")

    target1 = target2 = None
    lun = 0
    if device_type == BootDeviceType.STORAGE:
        target1 = reader.text("Target1")
        target2 = reader.text("Target2")
        for attr, target in (("Target1", target1), ("Target2", target2)):
            if target is not None:
                reader.check(attr, fields.is_colon_hex(target, 8))
        if target2 is not None and device2 is None:
            reader.warning("Target2 ignored without Device2")
            target2 = None
        lun = reader.integer("Lun", 0, MAX_LUN, required=False, default=0)
    else:
        ignored = [a for a in ("Target1", "Target2", "Lun") if reader.has(a)]
        if ignored:
            reader.warning(f"{', '.join(ignored)} ignored for a network boot device")

    if reader.failed:
        return None
    return BootDevice(
        type=device_type,
        device1=device1,
        device2=device2,
        fabric=fabric or FabricId.A,
        target1=target1.upper() if target1 else None,
        target2=target2.upper() if target2 else None,
        lun=lun,
    )


def validate_boot_policy(reader: EntryReader) -> Optional[BootPolicyDefinition]:
    """Validate a boot policy and its ordered device list.

    Each device kind (and each local medium) may appear once; the list
    position is the boot order.
    """
    name = reader.name()
    org = reader.org()
    description = reader.text("Description", default="")
    mode = reader.choice("Mode", BOOT_MODES, default="legacy")
    reboot = reader.flag("RebootOnUpdate")
    enforce = reader.flag("EnforceNames", default=True)
    reader.warn_unknown(COMMON_ATTRIBUTES + ("Mode", "RebootOnUpdate", "EnforceNames", "Devices"))

    if not reader.has("Devices"):
        reader.error("at least one boot device is required")

    devices = []
    seen: set[str] = set()
    for row in reader.rows("Devices"):
        device = _boot_device(row)
        if device is None:
            continue
        key = device.device1 if device.type == BootDeviceType.LOCAL else device.type.value
        if key in seen:
            row.error(f"boot device '{key}' is listed more than once")
            continue
        seen.add(key)
        devices.append(device)

    if reader.failed:
        return None
    return BootPolicyDefinition(
        name=name,
        devices=devices,
        org=org,
        mode=mode,
        reboot_on_update=reboot,
        enforce_names=enforce,
        description=description,
    )


# --- Service profiles ---

def _interfaces(reader: EntryReader, attr: str, adapter: bool) -> list[InterfaceInstance]:
    interfaces = []
    seen: set[str] = set()
    for row in reader.rows(attr):
        name = row.name()
        template = row.name("Template")
        adapter_policy = row.name("AdapterPolicy", required=False) if adapter else None
        row.warn_unknown(("Name", "Template", "AdapterPolicy") if adapter else ("Name", "Template"))
        if name is not None and name in seen:
            row.error(f"interface name '{name}' is used more than once")
        if row.failed:
            continue
        seen.add(name)
        interfaces.append(InterfaceInstance(name=name, template=template, adapter_policy=adapter_policy))
    return interfaces


def validate_profile_template(reader: EntryReader) -> Optional[ProfileTemplate]:
    name = reader.name()
    org = reader.org()
    description = reader.text("Description", default="")
    template_type = reader.choice("Type", UpdateMode, default=UpdateMode.UPDATING)

    policies = {}
    for attr, key in PROFILE_POLICY_ATTRIBUTES.items():
        value = reader.name(attr, required=False)
        if value is not None:
            policies[key] = value
    uuid_pool = reader.name("UuidPool", required=False)
    wwnn_pool = reader.name("WwnnPool", required=False)

    vnics = _interfaces(reader, "Vnics", adapter=True)
    vhbas = _interfaces(reader, "Vhbas", adapter=False)
    if not reader.has("Vnics") and not reader.has("Vhbas"):
        reader.warning("template defines no vNICs or vHBAs")
    reader.warn_unknown(
        COMMON_ATTRIBUTES
        + ("Type", "UuidPool", "WwnnPool", "Vnics", "Vhbas")
        + tuple(PROFILE_POLICY_ATTRIBUTES)
    )

    if reader.failed:
        return None
    return ProfileTemplate(
        name=name,
        org=org,
        type=template_type,
        description=description,
        policies=policies,
        uuid_pool=uuid_pool,
        wwnn_pool=wwnn_pool,
        vnics=vnics,
        vhbas=vhbas,
    )


def validate_profile_instance(reader: EntryReader) -> Optional[ProfileInstance]:
    name = reader.name()
    template = reader.name("Template")
    org = reader.org()
    description = reader.text("Description", default="")
    reader.warn_unknown(COMMON_ATTRIBUTES + ("Template",))

    if reader.failed:
        return None
    return ProfileInstance(name=name, template=template, org=org, description=description)


# --- Section catalogue ---

@dataclass(frozen=True)
class SectionRule:
    """How one section's rows are validated and which keys must be unique."""
    name: str
    validate: Callable[[EntryReader], Any]
    keys: Callable[[Any], Iterable[tuple]]


def _named(entity: Any) -> list[tuple]:
    return [("name", entity.name)]


def _named_kind(entity: Any) -> list[tuple]:
    return [(entity.kind.value, entity.name)]


def _pool_keys(pool: PoolDefinition) -> list[tuple]:
    # wwnn and wwpn pools share one name space on the fabric
    namespace = "wwn" if pool.kind in (PoolKind.WWNN, PoolKind.WWPN) else pool.kind.value
    return [(f"{namespace} pool", pool.name)]


def _channel_keys(channel: PortChannelDefinition) -> list[tuple]:
    return [
        ("A name", channel.name_a),
        ("B name", channel.name_b),
        ("A id", channel.id_a),
        ("B id", channel.id_b),
    ] + [("member port", f"{channel.module}/{port}") for port in channel.ports]


SECTION_RULES = (
    SectionRule(ORGANIZATIONS, validate_organization, _named),
    SectionRule(POOLS, validate_pool, _pool_keys),
    SectionRule(VLANS, validate_segment, _named),
    SectionRule(VSANS, lambda r: validate_segment(r, storage=True), _named),
    SectionRule(POLICIES, validate_policy, _named_kind),
    SectionRule(PORT_ROLES, validate_port_row, lambda row: [("port", f"{row.module}/{row.port}")]),
    SectionRule(PORT_CHANNELS, validate_port_channel, _channel_keys),
    SectionRule(VNIC_TEMPLATES, lambda r: validate_template(r, TemplateKind.NETWORK), _named),
    SectionRule(VHBA_TEMPLATES, lambda r: validate_template(r, TemplateKind.STORAGE), _named),
    SectionRule(BOOT_POLICIES, validate_boot_policy, _named),
    SectionRule(PROFILE_TEMPLATES, validate_profile_template, _named),
    SectionRule(PROFILE_INSTANCES, validate_profile_instance, _named),
)


class ConfigValidator:
    """Validate a provisioning document before anything touches the fabric."""

    def __init__(self, rules: Iterable[SectionRule] = SECTION_RULES):
        self.rules = tuple(rules)

    def validate(self, document: ConfigDocument) -> tuple[SectionRegistry, ValidationReport]:
        """
        Validate every known section of a document.

        Performs, without stopping at the first finding:
        - per-entry attribute and cross-field checks
        - duplicate names (and ports, ids) within a section
        - cross-section references
        - unknown top-level keys (warning)

        Args:
            document: Loaded document

        Returns:
            (registry, report): the registry holds the typed entries of every
            section, the report is closed and carries the verdict
        """
        report = ValidationReport(rule.name for rule in self.rules)
        builder = RegistryBuilder()

        for rule in self.rules:
            report.visit(rule.name)
            records: list[ErrorRecord] = []
            readers = read_section(rule.name, document.section(rule.name), records)

            if readers is None:
                report.mark_undefined(rule.name)
                builder.record(rule.name, None)
                continue

            entities = []
            for reader in readers:
                entity = rule.validate(reader)
                if entity is not None and not reader.failed:
                    entities.append((reader, entity))

            self._check_duplicates(rule, entities, records)
            report.extend(records)
            builder.record(rule.name, [entity for _, entity in entities])
            logger.debug(f"{rule.name}: {len(entities)}/{len(readers)} entries valid")

        known = {rule.name for rule in self.rules} | {ENDPOINT_SECTION}
        for key in document.names():
            if key not in known:
                report.warning(key, "", "unknown section ignored")

        registry = builder.freeze()
        report.extend(check_references(registry))
        report.close()
        return registry, report

    def _check_duplicates(
        self,
        rule: SectionRule,
        entities: list[tuple[EntryReader, Any]],
        records: list[ErrorRecord],
    ) -> None:
        """Reject an entry whose unique key was already claimed by an earlier one."""
        owners: dict[tuple, int] = {}
        for reader, entity in entities:
            for key in rule.keys(entity):
                if key in owners:
                    kind, value = key
                    records.append(
                        ErrorRecord(
                            rule.name,
                            reader.label,
                            f"duplicate {kind} '{value}' (first defined by entry #{owners[key]})",
                        )
                    )
                else:
                    owners[key] = reader.position
