"""
FRAMEWORK REGISTRY - Named Ethical Frameworks and Their Weights

Frameworks are registered once at startup. A cycle never reads the
registry directly: it takes a snapshot, an immutable name-ordered view
with normalized weights, so every score in a report is computed against
the same weight set even if the registry changes concurrently.

Usage:
    from recursive_cognition.registry import EthicalFramework, FrameworkRegistry

    registry = FrameworkRegistry()
    registry.register(EthicalFramework(
        name="care",
        weight=0.3,
        scorer=care_scorer,
        tags={"patients", "caregivers"},
    ))

    snapshot = registry.snapshot()
"""
import threading
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Iterator, Mapping, Optional, Protocol, Tuple, runtime_checkable

from recursive_cognition.exceptions import ConfigurationError, DuplicateFramework, RegistryUnavailable
from recursive_cognition.logging_config import get_logger
from recursive_cognition.models import CandidateResponse, FrameworkScore, Stimulus

logger = get_logger(__name__)

# Applies a framework to every stakeholder context
ANY_STAKEHOLDER = "*"

# Sums within this distance of 1.0 are left untouched
NORMALIZATION_EPSILON = 1e-9


@runtime_checkable
class ScoringFunction(Protocol):
    """
    Scoring contract: (stimulus, response) -> FrameworkScore.

    Must be pure. Frameworks registered with uses_rng=True are called with
    an extra `rng` keyword holding a seeded random.Random.
    """

    def __call__(self, stimulus: Stimulus, response: CandidateResponse, **kwargs) -> FrameworkScore:
        ...


@dataclass(frozen=True)
class EthicalFramework:
    """A named value system with a scoring function and applicability tags"""
    name: str
    weight: float
    scorer: ScoringFunction
    tags: FrozenSet[str] = frozenset({ANY_STAKEHOLDER})
    uses_rng: bool = False
    description: str = ""

    def __post_init__(self):
        if not self.name:
            raise ConfigurationError("Framework name must not be empty")
        if not 0.0 <= self.weight <= 1.0:
            raise ConfigurationError(
                "Framework weight out of range [0, 1]",
                details={"framework": self.name, "weight": self.weight},
            )
        if not callable(self.scorer):
            raise ConfigurationError(
                "Framework scorer must be callable",
                details={"framework": self.name},
            )
        object.__setattr__(self, "tags", frozenset(self.tags))

    def applies_to(self, stakeholders: Iterable[str]) -> bool:
        if ANY_STAKEHOLDER in self.tags:
            return True
        return not self.tags.isdisjoint(stakeholders)


@dataclass(frozen=True)
class RegistrySnapshot:
    """
    Immutable, name-ordered view of the registry for one cycle.

    `frameworks` carry the effective (normalized) weights. The raw sum and
    scale factor are recorded so the normalization is reproducible.
    """
    frameworks: Tuple[EthicalFramework, ...]
    version: int = 0
    original_weight_sum: float = 1.0
    scale: float = 1.0
    adjustments: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "frameworks", tuple(self.frameworks))
        object.__setattr__(self, "adjustments", MappingProxyType(dict(self.adjustments)))

    def __iter__(self) -> Iterator[EthicalFramework]:
        return iter(self.frameworks)

    def __len__(self) -> int:
        return len(self.frameworks)

    @property
    def normalized(self) -> bool:
        return self.scale != 1.0

    @property
    def weights(self) -> Mapping[str, float]:
        return MappingProxyType({f.name: f.weight for f in self.frameworks})

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.frameworks)

    def get(self, name: str) -> Optional[EthicalFramework]:
        for framework in self.frameworks:
            if framework.name == name:
                return framework
        return None


class FrameworkRegistry:
    """
    Holds the registered frameworks.

    Responsibilities:
    - Reject duplicate names
    - Produce immutable snapshots with normalized weights
    - Apply feedback weight adjustments at snapshot time only
    """

    def __init__(self, frameworks: Iterable[EthicalFramework] = ()):
        self._frameworks: Dict[str, EthicalFramework] = {}
        self._lock = threading.Lock()
        self._version = 0
        for framework in frameworks:
            self.register(framework)

    def __len__(self) -> int:
        return len(self._frameworks)

    def __contains__(self, name: str) -> bool:
        return name in self._frameworks

    @property
    def version(self) -> int:
        return self._version

    def names(self) -> Tuple[str, ...]:
        with self._lock:
            return tuple(sorted(self._frameworks))

    def base_weights(self) -> Dict[str, float]:
        """Registered weights before any feedback adjustment"""
        with self._lock:
            return {name: f.weight for name, f in self._frameworks.items()}

    def register(self, framework: EthicalFramework) -> None:
        with self._lock:
            if framework.name in self._frameworks:
                raise DuplicateFramework(framework.name)
            self._frameworks[framework.name] = framework
            self._version += 1

        logger.info(
            "framework_registered",
            name=framework.name,
            weight=framework.weight,
            tags=sorted(framework.tags),
            version=self._version,
        )

    def weights_sum_to_one(self) -> bool:
        with self._lock:
            total = sum(f.weight for f in self._frameworks.values())
        return abs(total - 1.0) <= NORMALIZATION_EPSILON

    def snapshot(self, weight_adjustments: Optional[Mapping[str, float]] = None) -> RegistrySnapshot:
        """
        Freeze the registry for one cycle.

        weight_adjustments: framework -> additive weight change from human
        feedback, clamped so effective weights stay in [0, 1]. Unknown
        names are ignored.
        """
        with self._lock:
            registered = [self._frameworks[name] for name in sorted(self._frameworks)]
            version = self._version

        if not registered:
            raise RegistryUnavailable()

        adjustments = {
            name: delta
            for name, delta in (weight_adjustments or {}).items()
            if any(f.name == name for f in registered)
        }

        effective = []
        for framework in registered:
            weight = framework.weight + adjustments.get(framework.name, 0.0)
            effective.append(replace(framework, weight=max(0.0, min(1.0, weight))))

        total = sum(f.weight for f in effective)
        if total <= 0.0:
            raise ConfigurationError(
                "Effective framework weights sum to zero",
                details={"frameworks": [f.name for f in effective]},
            )

        scale = 1.0
        if abs(total - 1.0) > NORMALIZATION_EPSILON:
            scale = 1.0 / total
            effective = [replace(f, weight=f.weight / total) for f in effective]
            logger.debug(
                "snapshot_weights_normalized",
                original_sum=total,
                scale=scale,
                version=version,
            )

        return RegistrySnapshot(
            frameworks=tuple(effective),
            version=version,
            original_weight_sum=total,
            scale=scale,
            adjustments=adjustments,
        )
