"""
Plan catalog: plan tiers, feature limits, capability flags and purchase packages.

Single source of truth for every limit and capability. Loaded once from
``config/pricing.json`` with ``load_catalog()`` and injected wherever a limit is
needed; nothing else hardcodes plan numbers.

In the configuration file a limit of -1 means unlimited. Inside the code a limit is
always a ``Limit`` value, so the sentinel never takes part in arithmetic.
"""
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Dict, FrozenSet, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from cvforge.core import config
from cvforge.core.errors import UnknownPackage, UnknownPlan

logger = logging.getLogger(__name__)

UNLIMITED_SENTINEL = -1

# Orders store edits as a plain integer; 999 is displayed as "Unlimited" but is
# decremented like any other cap.
UNLIMITED_EDITS = 999


class PlanId(str, Enum):
    """Plan tiers in ascending rank."""
    BASIC = "basic"
    PRO = "pro"
    PREMIUM = "premium"

    @property
    def rank(self) -> int:
        return PLAN_ORDER.index(self)

    @classmethod
    def parse(cls, value: Union[str, "PlanId", None]) -> "PlanId":
        """Parse a stored or requested plan id; never defaults."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnknownPlan(value) from None


PLAN_ORDER: Tuple[PlanId, ...] = (PlanId.BASIC, PlanId.PRO, PlanId.PREMIUM)


class Feature(str, Enum):
    """Limit keys declared per plan."""
    CV_GENERATIONS = "cvGenerations"
    COVER_LETTER_GENERATIONS = "coverLetterGenerations"
    AI_RUNS = "aiRuns"
    TEMPLATES = "templates"

    @property
    def metered(self) -> bool:
        return self in METERED_FEATURES


# Features counted in the usage ledger. Template access is a plain cap.
METERED_FEATURES: FrozenSet[Feature] = frozenset({
    Feature.CV_GENERATIONS,
    Feature.COVER_LETTER_GENERATIONS,
    Feature.AI_RUNS,
})


class Capability(str, Enum):
    """Binary plan capabilities, independent of monthly counts."""
    PREMIUM_TEMPLATES = "premiumTemplates"
    COVER_LETTER = "coverLetter"
    ATS_CHECK = "atsCheck"
    LINKEDIN_OPTIMIZATION = "linkedInOptimization"
    WORD_EXPORT = "wordExport"
    PRIORITY_SUPPORT = "prioritySupport"


class PackageType(str, Enum):
    """One-time purchase packages."""
    BASIC = "basic"
    STANDARD = "standard"
    PREMIUM = "premium"

    @classmethod
    def parse(cls, value: Union[str, "PackageType", None]) -> "PackageType":
        if isinstance(value, cls):
            return value
        if value == "pro":
            return cls.STANDARD
        try:
            return cls(value)
        except ValueError:
            raise UnknownPackage(value) from None


@dataclass(frozen=True)
class Limit:
    """A monthly cap, or unlimited when ``cap`` is None."""
    cap: Optional[int]

    @classmethod
    def unlimited(cls) -> "Limit":
        return cls(None)

    @classmethod
    def limited(cls, cap: int) -> "Limit":
        if cap < 0:
            raise ValueError(f"limit must be non-negative, got {cap}")
        return cls(cap)

    @classmethod
    def from_config(cls, value: int) -> "Limit":
        if value == UNLIMITED_SENTINEL:
            return cls.unlimited()
        return cls.limited(value)

    @property
    def is_unlimited(self) -> bool:
        return self.cap is None

    def is_reached(self, count: int) -> bool:
        return self.cap is not None and count >= self.cap

    def grants_more_than(self, other: "Limit") -> bool:
        """True if this limit is strictly more generous than ``other``."""
        if other.is_unlimited:
            return False
        if self.is_unlimited:
            return True
        return self.cap > other.cap

    def to_wire(self) -> int:
        return UNLIMITED_SENTINEL if self.cap is None else self.cap

    def __str__(self) -> str:
        return "unlimited" if self.cap is None else str(self.cap)


@dataclass(frozen=True)
class PlanDefinition:
    plan_id: PlanId
    name: str
    price: int
    limits: Mapping[Feature, Limit]
    capabilities: FrozenSet[Capability]
    features: Tuple[str, ...] = ()
    limitations: Tuple[str, ...] = ()
    upgrade_prompts: Mapping[str, str] = field(default_factory=dict)

    def limit(self, feature: Feature) -> Limit:
        return self.limits[feature]

    def has_capability(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def to_dict(self) -> dict:
        return {
            "id": self.plan_id.value,
            "name": self.name,
            "price": self.price,
            "limits": {f.value: self.limits[f].to_wire() for f in Feature},
            "capabilities": {c.value: c in self.capabilities for c in Capability},
            "features": list(self.features),
            "limitations": list(self.limitations),
            "upgrade_prompts": dict(self.upgrade_prompts),
        }


@dataclass(frozen=True)
class PackageDefinition:
    """The entitlement bundle granted by a one-time purchase."""
    package_type: PackageType
    name: str
    price: int
    edits_allowed: int
    has_cover_letter: bool
    has_linkedin_optimization: bool
    template_count: int
    features: Tuple[str, ...] = ()

    def bundle(self) -> dict:
        """Snapshot stored on an order at creation and stamped at completion."""
        return {
            "edits_allowed": self.edits_allowed,
            "has_cover_letter": self.has_cover_letter,
            "has_linkedin_optimization": self.has_linkedin_optimization,
            "template_count": self.template_count,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.package_type.value,
            "name": self.name,
            "price": self.price,
            "edits_allowed": self.edits_allowed,
            "unlimited_edits": self.edits_allowed >= UNLIMITED_EDITS,
            "has_cover_letter": self.has_cover_letter,
            "has_linkedin_optimization": self.has_linkedin_optimization,
            "template_count": self.template_count,
            "features": list(self.features),
        }


# ============================================
# Configuration file schema
# ============================================

class _PlanConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    price: int = Field(..., ge=0)
    limits: Dict[Feature, int]
    capabilities: Dict[Capability, bool] = Field(default_factory=dict)
    features: List[str] = Field(default_factory=list)
    limitations: List[str] = Field(default_factory=list)
    upgrade_prompts: Dict[str, str] = Field(default_factory=dict, alias="upgradePrompts")

    @field_validator("limits")
    @classmethod
    def validate_limits(cls, v: Dict[Feature, int]) -> Dict[Feature, int]:
        missing = set(Feature) - set(v)
        if missing:
            raise ValueError(f"missing limits: {sorted(f.value for f in missing)}")
        for feature, value in v.items():
            if value < UNLIMITED_SENTINEL:
                raise ValueError(f"invalid limit for {feature.value}: {value}")
        return v


class _PackageConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    price: int = Field(..., ge=0)
    edits_allowed: int = Field(..., ge=0, alias="editsAllowed")
    has_cover_letter: bool = Field(False, alias="hasCoverLetter")
    has_linkedin_optimization: bool = Field(False, alias="hasLinkedInOptimization")
    template_count: int = Field(1, ge=1, alias="templateCount")
    features: List[str] = Field(default_factory=list)


class _CatalogConfig(BaseModel):
    currency: str = "GHS"
    plans: Dict[PlanId, _PlanConfig]
    packages: Dict[PackageType, _PackageConfig]

    @model_validator(mode="after")
    def validate_complete(self) -> "_CatalogConfig":
        if set(self.plans) != set(PlanId):
            raise ValueError("catalog must define exactly the basic, pro and premium plans")
        if set(self.packages) != set(PackageType):
            raise ValueError("catalog must define the basic, standard and premium packages")
        return self


# ============================================
# Catalog
# ============================================

class PlanCatalog:
    """Read-only view over plan and package definitions."""

    def __init__(
        self,
        plans: Mapping[PlanId, PlanDefinition],
        packages: Mapping[PackageType, PackageDefinition],
        currency: str = "GHS",
    ):
        self._plans = dict(plans)
        self._packages = dict(packages)
        self.currency = currency

    def get_plan(self, plan_id: Union[str, PlanId]) -> PlanDefinition:
        """Return the plan definition; raises UnknownPlan for anything else."""
        plan = PlanId.parse(plan_id)
        try:
            return self._plans[plan]
        except KeyError:
            raise UnknownPlan(plan_id) from None

    def get_limit(self, plan_id: Union[str, PlanId], feature: Feature) -> Limit:
        return self.get_plan(plan_id).limit(feature)

    def has_capability(self, plan_id: Union[str, PlanId], capability: Capability) -> bool:
        return self.get_plan(plan_id).has_capability(capability)

    def plans(self) -> List[PlanDefinition]:
        return [self._plans[p] for p in PLAN_ORDER]

    def tiers_above(self, plan_id: Union[str, PlanId]) -> List[PlanId]:
        plan = PlanId.parse(plan_id)
        return [p for p in PLAN_ORDER if p.rank > plan.rank]

    def minimum_plan_for(self, capability: Capability) -> Optional[PlanId]:
        """Lowest tier that unlocks ``capability``, or None if no tier does."""
        for plan_id in PLAN_ORDER:
            if self._plans[plan_id].has_capability(capability):
                return plan_id
        return None

    def get_package(self, package_type: Union[str, PackageType]) -> PackageDefinition:
        return self._packages[PackageType.parse(package_type)]

    def packages(self) -> List[PackageDefinition]:
        return [self._packages[p] for p in PackageType]

    def minimum_package_for(self, bundle_flag: str) -> Optional[PackageType]:
        """Cheapest package whose bundle sets ``bundle_flag`` (e.g. "has_cover_letter")."""
        for package in sorted(self._packages.values(), key=lambda p: p.price):
            if package.bundle().get(bundle_flag):
                return package.package_type
        return None

    @classmethod
    def from_dict(cls, data: dict) -> "PlanCatalog":
        parsed = _CatalogConfig.model_validate(data)

        plans = {
            plan_id: PlanDefinition(
                plan_id=plan_id,
                name=cfg.name,
                price=cfg.price,
                limits={f: Limit.from_config(v) for f, v in cfg.limits.items()},
                capabilities=frozenset(c for c, enabled in cfg.capabilities.items() if enabled),
                features=tuple(cfg.features),
                limitations=tuple(cfg.limitations),
                upgrade_prompts=dict(cfg.upgrade_prompts),
            )
            for plan_id, cfg in parsed.plans.items()
        }
        packages = {
            package_type: PackageDefinition(
                package_type=package_type,
                name=cfg.name,
                price=cfg.price,
                edits_allowed=cfg.edits_allowed,
                has_cover_letter=cfg.has_cover_letter,
                has_linkedin_optimization=cfg.has_linkedin_optimization,
                template_count=cfg.template_count,
                features=tuple(cfg.features),
            )
            for package_type, cfg in parsed.packages.items()
        }
        return cls(plans, packages, currency=parsed.currency)


def load_catalog(path: Union[str, Path, None] = None) -> PlanCatalog:
    """
    Load and validate the pricing configuration.

    Raises pydantic.ValidationError on malformed configuration, including unknown
    plan, feature or capability names, so a bad file fails at startup.
    """
    path = Path(path or config.PRICING_CONFIG_PATH)
    with path.open(encoding="utf-8") as fh:
        data = json.load(fh)

    catalog = PlanCatalog.from_dict(data)
    logger.info(f"Plan catalog loaded: path={path}, plans={[p.plan_id.value for p in catalog.plans()]}")
    return catalog


@lru_cache(maxsize=1)
def get_catalog() -> PlanCatalog:
    """Process-wide catalog, loaded on first use. FastAPI dependency."""
    return load_catalog()
