from .engine import DropEngine, EngineState, Phase, make_engine
from .graph import NeighborGraph
from .ordering import EnemyDistanceOrdering, OrderingStrategy
from .predicates import ErrorPredicate, RemovalDecision, RemovalPredicate, ThresholdPredicate
from .variants import VARIANTS, Criterion, VariantConfig, get_variant

__all__ = [
    'DropEngine',
    'EngineState',
    'Phase',
    'make_engine',
    'NeighborGraph',
    'EnemyDistanceOrdering',
    'OrderingStrategy',
    'ErrorPredicate',
    'RemovalDecision',
    'RemovalPredicate',
    'ThresholdPredicate',
    'VARIANTS',
    'Criterion',
    'VariantConfig',
    'get_variant',
]
