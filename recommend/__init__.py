"""
Rule-based recommendations of related government datasets
"""

from .engine import RecommendationEngine, InvalidRecommendationRequest, merge_recommendations
from .similarity import calculate_similarity

__all__ = ['RecommendationEngine', 'InvalidRecommendationRequest', 'merge_recommendations', 'calculate_similarity']
