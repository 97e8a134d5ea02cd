"""Attribute comparators, lookup tables and the scoring factor registry."""

from .comparators import (
    compare_categorical,
    compare_continuous,
    compare_set_overlap,
    compare_vector,
    shared_items,
)
from .tables import CategoricalTable, StepTable, TABLES_VERSION
from .factors import AttributeKind, FactorSource, FactorSpec, FactorRegistry, DEFAULT_REGISTRY
from .geo import haversine_km, distance_between

__all__ = [
    "compare_categorical",
    "compare_continuous",
    "compare_set_overlap",
    "compare_vector",
    "shared_items",
    "CategoricalTable",
    "StepTable",
    "TABLES_VERSION",
    "AttributeKind",
    "FactorSource",
    "FactorSpec",
    "FactorRegistry",
    "DEFAULT_REGISTRY",
    "haversine_km",
    "distance_between",
]
