"""Schema definitions for the Config Engine.

Typed entities produced by the validators, plus the records that flow between
validation, the section registry and the apply orchestrator.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class PoolKind(str, Enum):
    """Identity pool kinds."""
    MAC = "mac"     # address-class
    UUID = "uuid"   # unique-id
    WWNN = "wwnn"   # node-identity
    WWPN = "wwpn"   # port-identity
    IP = "ip"       # management address block


class AssignmentOrder(str, Enum):
    SEQUENTIAL = "sequential"
    DEFAULT = "default"


class FabricAffinity(str, Enum):
    """Which fabric(s) a network segment lives on."""
    COMMON = "common"   # shared by both fabrics
    DUAL = "dual"       # distinct per fabric, one tag each
    A = "a"
    B = "b"


class FabricId(str, Enum):
    A = "A"
    B = "B"


class PolicyKind(str, Enum):
    POWER = "power"
    SCRUB = "scrub"
    MAINTENANCE = "maintenance"
    DISK = "disk"
    BIOS = "bios"
    PLACEMENT = "placement"


class TemplateKind(str, Enum):
    NETWORK = "network"   # vNIC template
    STORAGE = "storage"   # vHBA template


class UpdateMode(str, Enum):
    INITIAL = "initial-template"
    UPDATING = "updating-template"


class PortRole(str, Enum):
    UNSET = "unset"
    SERVER = "server"
    UPLINK = "uplink"
    APPLIANCE = "appliance"
    FCOE = "fcoe"


class PortMode(str, Enum):
    TRUNK = "trunk"
    ACCESS = "access"


class BootDeviceType(str, Enum):
    LOCAL = "local"
    NETWORK = "network"
    STORAGE = "storage"


class LocalMedia(str, Enum):
    CDROM = "cdrom"
    FLOPPY = "floppy"
    LOCALDISK = "localdisk"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


# --- Document entities ---

@dataclass
class OrganizationDefinition:
    """Sub-organization created one level below root."""
    name: str
    description: str = ""


@dataclass
class PoolDefinition:
    """Named identity range with one member block."""
    kind: PoolKind
    name: str
    start: str
    end: str
    order: AssignmentOrder = AssignmentOrder.DEFAULT
    org: str = "root"
    description: str = ""
    # uuid only
    prefix: str = "derived"
    # ip only
    gateway: Optional[str] = None
    netmask: Optional[str] = None


@dataclass
class NetworkSegment:
    """VLAN or VSAN with its fabric affinity and tag(s)."""
    name: str
    affinity: FabricAffinity
    tag: int
    tag_b: Optional[int] = None
    default_net: bool = False
    # VSAN only
    fcoe_vlan: Optional[int] = None
    fcoe_vlan_b: Optional[int] = None

    def tags_by_fabric(self) -> dict[Optional[FabricId], int]:
        """Tag per fabric; the None key stands for the shared cloud."""
        if self.affinity == FabricAffinity.COMMON:
            return {None: self.tag}
        if self.affinity == FabricAffinity.A:
            return {FabricId.A: self.tag}
        if self.affinity == FabricAffinity.B:
            return {FabricId.B: self.tag}
        return {FabricId.A: self.tag, FabricId.B: self.tag_b}


@dataclass
class PolicyDefinition:
    """Server policy with one enumerated primary setting."""
    kind: PolicyKind
    name: str
    mode: str
    org: str = "root"
    description: str = ""
    settings: dict[str, str] = field(default_factory=dict)


@dataclass
class TemplateDefinition:
    """Network (vNIC) or storage (vHBA) interface template."""
    kind: TemplateKind
    name: str
    fabric: str
    segment: str
    org: str = "root"
    mtu: Optional[int] = None
    pool: Optional[str] = None
    qos: Optional[str] = None
    native: bool = False
    update_mode: UpdateMode = UpdateMode.INITIAL
    description: str = ""


@dataclass
class PortRow:
    """Role assignment for one physical port, applied on both fabrics."""
    module: int
    port: int
    role: PortRole
    vlan: Optional[str] = None
    native: bool = False
    mode: Optional[PortMode] = None
    qos: str = "best-effort"


@dataclass
class PortChannelDefinition:
    """Uplink port channel pair, one channel per fabric over the same ports."""
    name_a: str
    id_a: int
    name_b: str
    id_b: int
    module: int
    ports: tuple[int, int]

    def for_fabric(self, fabric: FabricId) -> tuple[str, int]:
        if fabric is FabricId.A:
            return self.name_a, self.id_a
        return self.name_b, self.id_b


@dataclass
class BootDevice:
    """One boot device; its list position is its boot order."""
    type: BootDeviceType
    device1: str
    device2: Optional[str] = None
    fabric: Optional[FabricId] = None
    target1: Optional[str] = None
    target2: Optional[str] = None
    lun: int = 0


@dataclass
class BootPath:
    """Resolved primary or secondary path of a network/storage boot device."""
    role: str  # "primary" or "secondary"
    interface: str
    fabric: Optional[FabricId] = None
    target: Optional[str] = None


@dataclass
class BootPolicyDefinition:
    name: str
    devices: list[BootDevice]
    org: str = "root"
    mode: str = "legacy"
    reboot_on_update: bool = False
    enforce_names: bool = True
    description: str = ""


@dataclass
class InterfaceInstance:
    """vNIC or vHBA of a profile template, bound to an interface template."""
    name: str
    template: str
    adapter_policy: Optional[str] = None


@dataclass
class ProfileTemplate:
    name: str
    org: str = "root"
    type: UpdateMode = UpdateMode.UPDATING
    description: str = ""
    # policy kind or reference name -> referenced object name
    policies: dict[str, str] = field(default_factory=dict)
    uuid_pool: Optional[str] = None
    wwnn_pool: Optional[str] = None
    vnics: list[InterfaceInstance] = field(default_factory=list)
    vhbas: list[InterfaceInstance] = field(default_factory=list)


@dataclass
class ProfileInstance:
    name: str
    template: str
    org: str = "root"
    description: str = ""


# --- Validation records ---

@dataclass(frozen=True)
class ErrorRecord:
    """One validation finding, located by section and entry."""
    section: str
    entry: str
    message: str
    severity: Severity = Severity.ERROR

    def __str__(self) -> str:
        where = f"{self.section}[{self.entry}]" if self.entry else self.section
        return f"{where}: {self.message}"


# --- Apply results ---

@dataclass
class GroupOutcome:
    """Result of issuing one causal group."""
    section: str
    label: str
    success: bool
    applied: int = 0
    total: int = 0
    error: Optional[str] = None

    def __str__(self) -> str:
        status = "OK" if self.success else f"FAILED ({self.applied}/{self.total} applied): {self.error}"
        return f"{self.section} {self.label}: {status}"


@dataclass
class ApplyResult:
    """Outcome of the apply phase across all sections."""
    outcomes: list[GroupOutcome] = field(default_factory=list)
    skipped_sections: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(o.success for o in self.outcomes)

    @property
    def failed_groups(self) -> list[GroupOutcome]:
        return [o for o in self.outcomes if not o.success]

    @property
    def objects_applied(self) -> int:
        return sum(o.applied for o in self.outcomes)

    def summary(self) -> str:
        """Human-readable summary listing every failed group."""
        lines = [
            f"Applied {len(self.outcomes) - len(self.failed_groups)}/{len(self.outcomes)} groups "
            f"({self.objects_applied} objects)"
        ]
        if self.skipped_sections:
            lines.append(f"Skipped (undefined): {', '.join(self.skipped_sections)}")
        for outcome in self.failed_groups:
            lines.append(f"  - {outcome}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "objects_applied": self.objects_applied,
            "skipped_sections": self.skipped_sections,
            "groups": [
                {
                    "section": o.section,
                    "label": o.label,
                    "success": o.success,
                    "applied": o.applied,
                    "total": o.total,
                    "error": o.error,
                }
                for o in self.outcomes
            ],
        }


# --- Document sections, in apply (dependency) order ---

ORGANIZATIONS = "Organizations"
POOLS = "Pools"
VLANS = "VLANs"
VSANS = "VSANs"
POLICIES = "Policies"
PORT_ROLES = "PortRoles"
PORT_CHANNELS = "PortChannels"
VNIC_TEMPLATES = "VnicTemplates"
VHBA_TEMPLATES = "VhbaTemplates"
BOOT_POLICIES = "BootPolicies"
PROFILE_TEMPLATES = "ProfileTemplates"
PROFILE_INSTANCES = "ProfileInstances"

SECTION_ORDER = (
    ORGANIZATIONS,
    POOLS,
    VLANS,
    VSANS,
    POLICIES,
    PORT_ROLES,
    PORT_CHANNELS,
    VNIC_TEMPLATES,
    VHBA_TEMPLATES,
    BOOT_POLICIES,
    PROFILE_TEMPLATES,
    PROFILE_INSTANCES,
)

# Physical port count per fabric interconnect module
MODULE_PORTS = {1: 32, 2: 16}
