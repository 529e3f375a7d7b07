# backend/services/__init__.py
"""
Services package for StatShark
Contains the data pipeline and prediction strategies
"""
from .data_loader import DataLoader
from .injury_tracker import InjuryTracker
from .news_analyzer import NewsAnalyzer, NewsSignal
from .odds_reconciler import OddsReconciler
from .predictors import BaselinePredictor, EnhancedPredictor, PredictionContext, build_predictor
from .pipeline import PredictionPipeline, build_pipeline

__all__ = [
    "DataLoader",
    "InjuryTracker",
    "NewsAnalyzer",
    "NewsSignal",
    "OddsReconciler",
    "BaselinePredictor",
    "EnhancedPredictor",
    "PredictionContext",
    "build_predictor",
    "PredictionPipeline",
    "build_pipeline",
]
