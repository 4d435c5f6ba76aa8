"""Attack content catalogs"""

from .catalog import (
    AttackerAction,
    Catalog,
    HostSpec,
    MitigationDefinition,
    MitigationEffect,
    StageDefinition,
    VulnerabilityDefinition,
    load_catalog,
)

__all__ = [
    'AttackerAction',
    'Catalog',
    'HostSpec',
    'MitigationDefinition',
    'MitigationEffect',
    'StageDefinition',
    'VulnerabilityDefinition',
    'load_catalog',
]
