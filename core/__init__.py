# Feature construction for the online models
from .feature_engineering import FeatureEngine, FeatureScaler

__all__ = [
    "FeatureEngine",
    "FeatureScaler",
]
