"""
Cross-dataset similarity used by the domain and agency strategies
"""

from catalog.models import Dataset

DOMAIN_OVERLAP_WEIGHT = 0.3
KEYWORD_OVERLAP_WEIGHT = 0.2
TAG_OVERLAP_WEIGHT = 0.25
SAME_AGENCY_BONUS = 0.1
BOTH_API_BONUS = 0.15


def calculate_similarity(first: Dataset, second: Dataset) -> float:
    """
    Additive similarity between two datasets

    Not normalized: more shared domains, keywords and tags keep adding.

    Args:
        first: Reference dataset
        second: Candidate dataset

    Returns:
        Similarity score (0 or more, no upper bound)
    """
    similarity = 0.0

    second_domains = set(second.domains)
    domain_overlap = sum(1 for domain in set(first.domains) if domain in second_domains)
    similarity += domain_overlap * DOMAIN_OVERLAP_WEIGHT

    # Keywords of the first dataset with a substring partner in the second
    keyword_overlap = sum(
        1 for keyword in first.keywords
        if any(keyword in other or other in keyword for other in second.keywords)
    )
    similarity += keyword_overlap * KEYWORD_OVERLAP_WEIGHT

    second_tags = set(second.tags)
    tag_overlap = sum(1 for tag in set(first.tags) if tag in second_tags)
    similarity += tag_overlap * TAG_OVERLAP_WEIGHT

    if first.agency_id is not None and first.agency_id == second.agency_id:
        similarity += SAME_AGENCY_BONUS

    if first.is_api_accessible and second.is_api_accessible:
        similarity += BOTH_API_BONUS

    return similarity
