"""
Loading of attack content catalogs.

A catalog is a combination of:
    - vulnerability definitions, each with ordered escalation stages
    - the mitigations an operator can apply against each vulnerability
    - the roster of hosts to spawn, each carrying one vulnerability

Catalogs are read-only input to the simulation engine.
"""

from __future__ import annotations
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from importlib import resources
from types import MappingProxyType
from typing import Any, Optional
import logging

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_FILE = 'default_catalog.yml'

# All required fields in catalog yml file
required_fields = ['vulnerabilities', 'hosts']

# All allowed fields in catalog yml file
allowed_fields = required_fields + ['name']


class MitigationEffect(Enum):
    """Status transition forced when a mitigation completes"""

    NONE = 'none'
    SECURE = 'secure'  # host becomes safe
    QUARANTINE = 'quarantine'  # host becomes quarantined


@dataclass(frozen=True)
class MitigationDefinition:
    id: str
    label: str
    points: int
    # None means the simulator default apply time is used
    apply_time_sec: Optional[int] = None
    effect: MitigationEffect = MitigationEffect.NONE

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            'id': self.id, 'label': self.label, 'points': self.points
        }
        if self.apply_time_sec is not None:
            d['apply_time_sec'] = self.apply_time_sec
        if self.effect != MitigationEffect.NONE:
            d['effect'] = self.effect.value
        return d


@dataclass(frozen=True)
class AttackerAction:
    """Display-only description of what the attacker does in a stage"""

    label: str
    mitre_id: Optional[str] = None


@dataclass(frozen=True)
class StageDefinition:
    label: str
    time_limit_sec: int
    required_mitigations_any_of: frozenset[str]
    attacker_actions: tuple[AttackerAction, ...] = ()
    may_spread: bool = False
    # Mitigations that are counter-productive at this stage
    penalty_mitigations: frozenset[str] = frozenset()
    penalty_reasons: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def is_satisfied_by(self, mitigation_ids: tuple[str, ...]) -> bool:
        """True if any of the given ids meets the stage requirement"""
        return any(
            m_id in self.required_mitigations_any_of for m_id in mitigation_ids
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            'label': self.label,
            'time_limit_sec': self.time_limit_sec,
            'required_mitigations_any_of': sorted(
                self.required_mitigations_any_of
            ),
        }
        if self.attacker_actions:
            d['attacker_actions'] = [
                {'label': a.label, 'mitre_id': a.mitre_id}
                for a in self.attacker_actions
            ]
        if self.may_spread:
            d['may_spread'] = True
        if self.penalty_mitigations:
            d['penalty_mitigations'] = sorted(self.penalty_mitigations)
        if self.penalty_reasons:
            d['penalty_reasons'] = dict(self.penalty_reasons)
        return d


@dataclass(frozen=True)
class VulnerabilityDefinition:
    id: str
    name: str
    stages: tuple[StageDefinition, ...]
    mitigations: tuple[MitigationDefinition, ...]
    description: str = ''

    @property
    def last_stage_index(self) -> int:
        return len(self.stages) - 1

    def stage(self, index: int) -> StageDefinition:
        return self.stages[index]

    def mitigation(self, mitigation_id: str) -> Optional[MitigationDefinition]:
        """Return the mitigation with given id or None if not listed"""
        for mitigation in self.mitigations:
            if mitigation.id == mitigation_id:
                return mitigation
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            'name': self.name,
            'description': self.description,
            'stages': [s.to_dict() for s in self.stages],
            'mitigations': [m.to_dict() for m in self.mitigations],
        }


@dataclass(frozen=True)
class HostSpec:
    """A roster entry, spawned into a Host by the engine"""

    id: str
    name: str
    vuln_id: str
    spawn_delay_sec: int = 0
    region: str = ''

    def to_dict(self) -> dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'region': self.region,
            'vuln_id': self.vuln_id,
            'spawn_delay_sec': self.spawn_delay_sec,
        }


class Catalog:
    """Vulnerabilities, mitigations and hosts the simulation runs on"""

    def __init__(
        self,
        vulnerabilities: Mapping[str, VulnerabilityDefinition],
        hosts: tuple[HostSpec, ...],
        name: str = '',
    ):
        self.name = name
        self.vulnerabilities = MappingProxyType(dict(vulnerabilities))
        self.hosts = tuple(hosts)

        seen_host_ids: set[str] = set()
        for host in self.hosts:
            if host.vuln_id not in self.vulnerabilities:
                raise LookupError(
                    f"Host '{host.id}' references unknown "
                    f"vulnerability '{host.vuln_id}'"
                )
            if host.id in seen_host_ids:
                raise ValueError(f"Host id '{host.id}' is not unique")
            seen_host_ids.add(host.id)

        # Containment effects are resolved catalog-wide so that an id
        # behaves the same no matter which vulnerability a host carries
        self._effects: dict[str, MitigationEffect] = {}
        for vuln in self.vulnerabilities.values():
            for mitigation in vuln.mitigations:
                if mitigation.effect == MitigationEffect.NONE:
                    continue
                self._effects.setdefault(mitigation.id, mitigation.effect)

    def __repr__(self) -> str:
        return (
            f'Catalog(name={self.name!r}, '
            f'vulnerabilities={len(self.vulnerabilities)}, '
            f'hosts={len(self.hosts)})'
        )

    def vulnerability(self, vuln_id: str) -> VulnerabilityDefinition:
        return self.vulnerabilities[vuln_id]

    def mitigation_effect(self, mitigation_id: str) -> MitigationEffect:
        return self._effects.get(mitigation_id, MitigationEffect.NONE)

    @property
    def mitigation_ids(self) -> list[str]:
        """All mitigation ids in the catalog, in first-seen order"""
        ids: dict[str, None] = {}
        for vuln in self.vulnerabilities.values():
            for mitigation in vuln.mitigations:
                ids.setdefault(mitigation.id)
        return list(ids)

    def to_dict(self) -> dict[str, Any]:
        catalog_dict: dict[str, Any] = {}
        if self.name:
            catalog_dict['name'] = self.name
        catalog_dict['vulnerabilities'] = {
            vuln_id: vuln.to_dict()
            for vuln_id, vuln in self.vulnerabilities.items()
        }
        catalog_dict['hosts'] = [h.to_dict() for h in self.hosts]
        return catalog_dict

    def save_to_file(self, file_path: str) -> None:
        """Save catalog to a yaml-file"""
        with open(file_path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False)

    @classmethod
    def from_dict(cls, catalog_dict: dict[str, Any]) -> Catalog:
        """Create a catalog object from a catalog dictionary"""
        _validate_catalog_dict(catalog_dict)

        vulnerabilities = {
            str(vuln_id): _vulnerability_from_dict(str(vuln_id), vuln_dict)
            for vuln_id, vuln_dict in catalog_dict['vulnerabilities'].items()
        }
        hosts = tuple(
            HostSpec(
                id=str(host_dict['id']),
                name=host_dict.get('name', str(host_dict['id'])),
                region=host_dict.get('region', ''),
                vuln_id=host_dict['vuln_id'],
                spawn_delay_sec=int(host_dict.get('spawn_delay_sec', 0)),
            )
            for host_dict in catalog_dict['hosts']
        )
        for host in hosts:
            if host.spawn_delay_sec < 0:
                raise ValueError(
                    f"Host '{host.id}' has negative spawn_delay_sec"
                )

        return Catalog(
            vulnerabilities, hosts, name=catalog_dict.get('name', '')
        )

    @classmethod
    def load_from_file(cls, catalog_file: str) -> Catalog:
        with open(catalog_file, 'r', encoding='utf-8') as c_file:
            catalog_dict: dict[str, Any] = yaml.safe_load(c_file)
        logger.debug('Loaded catalog file %s', catalog_file)
        return cls.from_dict(catalog_dict)


def load_catalog(catalog_file: Optional[str] = None) -> Catalog:
    """Load a catalog file, or the catalog shipped with the package"""
    if catalog_file is not None:
        return Catalog.load_from_file(catalog_file)

    content = (
        resources.files(__package__)
        .joinpath(DEFAULT_CATALOG_FILE)
        .read_text(encoding='utf-8')
    )
    return Catalog.from_dict(yaml.safe_load(content))


def _validate_catalog_dict(catalog_dict: dict[str, Any]) -> None:
    """Verify catalog file keys"""

    if not isinstance(catalog_dict, dict):
        raise SyntaxError('Catalog must be a mapping')

    # Verify that all keys in dict are supported
    for key in catalog_dict:
        if key not in allowed_fields:
            raise SyntaxError(f"Catalog setting '{key}' is not supported")

    # Verify that all required fields are in catalog file
    for key in required_fields:
        if key not in catalog_dict:
            raise RuntimeError(f"Setting '{key}' required in catalog file")


def _mitigation_from_dict(d: dict[str, Any]) -> MitigationDefinition:
    apply_time = d.get('apply_time_sec')
    if apply_time is not None and int(apply_time) < 1:
        raise ValueError(
            f"Mitigation '{d['id']}' apply_time_sec must be at least 1"
        )
    return MitigationDefinition(
        id=str(d['id']),
        label=d.get('label', str(d['id'])),
        points=int(d.get('points', 0)),
        apply_time_sec=int(apply_time) if apply_time is not None else None,
        effect=MitigationEffect(d.get('effect', MitigationEffect.NONE.value)),
    )


def _stage_from_dict(vuln_id: str, d: dict[str, Any]) -> StageDefinition:
    required = frozenset(d.get('required_mitigations_any_of') or ())
    if not required:
        raise ValueError(
            f"Stage '{d.get('label')}' of '{vuln_id}' needs at least one "
            "required mitigation"
        )
    if int(d['time_limit_sec']) < 1:
        raise ValueError(
            f"Stage '{d.get('label')}' of '{vuln_id}' needs a positive "
            "time_limit_sec"
        )

    penalty_mitigations = frozenset(d.get('penalty_mitigations') or ())
    penalty_reasons = dict(d.get('penalty_reasons') or {})
    unknown_reasons = penalty_reasons.keys() - penalty_mitigations
    if unknown_reasons:
        raise ValueError(
            f"Penalty reasons given for {sorted(unknown_reasons)} in "
            f"'{vuln_id}' which are not penalty mitigations"
        )

    return StageDefinition(
        label=d['label'],
        time_limit_sec=int(d['time_limit_sec']),
        required_mitigations_any_of=required,
        attacker_actions=tuple(
            AttackerAction(a['label'], a.get('mitre_id'))
            for a in d.get('attacker_actions') or ()
        ),
        may_spread=bool(d.get('may_spread', False)),
        penalty_mitigations=penalty_mitigations,
        penalty_reasons=MappingProxyType(penalty_reasons),
    )


def _vulnerability_from_dict(
    vuln_id: str, d: dict[str, Any]
) -> VulnerabilityDefinition:
    stages = tuple(_stage_from_dict(vuln_id, s) for s in d.get('stages') or ())
    if not stages:
        raise ValueError(f"Vulnerability '{vuln_id}' has no stages")

    mitigations = tuple(_mitigation_from_dict(m) for m in d.get('mitigations') or ())
    mitigation_ids = [m.id for m in mitigations]
    if len(set(mitigation_ids)) != len(mitigation_ids):
        raise ValueError(f"Vulnerability '{vuln_id}' lists a mitigation twice")

    return VulnerabilityDefinition(
        id=vuln_id,
        name=d.get('name', vuln_id),
        description=d.get('description', ''),
        stages=stages,
        mitigations=mitigations,
    )
