"""
Query interpretation for government dataset searches
Turns free text into keywords, domain guesses, intent, entities and confidence
"""

import re
import logging
from typing import List, Dict, Tuple, Optional

from catalog.models import Intent, StructuredQuery

logger = logging.getLogger(__name__)


# Curated terms for each subject domain, in table order (ties keep this order)
DOMAIN_KEYWORDS: Dict[str, List[str]] = {
    'labour': [
        'employment', 'unemployment', 'workforce', 'job', 'labor', 'labour', 'occupation',
        'wage', 'salary', 'income', 'participation', 'work', 'career', 'skill', 'training'
    ],
    'health': [
        'health', 'medical', 'hospital', 'disease', 'wellbeing', 'mental', 'aged care',
        'elderly', 'nursing', 'doctor', 'patient', 'treatment', 'medicine'
    ],
    'housing': [
        'housing', 'home', 'property', 'rent', 'mortgage', 'affordable', 'homeless',
        'accommodation', 'dwelling', 'real estate', 'rental', 'household'
    ],
    'education': [
        'education', 'school', 'university', 'training', 'learning', 'student',
        'teacher', 'qualification', 'degree', 'course', 'skill development'
    ],
    'ageing': [
        'ageing', 'elderly', 'senior', 'retirement', 'pension', 'aged', 'population ageing',
        'longevity', 'geriatric', 'older people'
    ],
    'inequality': [
        'inequality', 'poverty', 'wealth', 'disparity', 'gap', 'distribution', 'equity',
        'socioeconomic', 'disadvantage', 'income distribution'
    ],
    'population': [
        'population', 'demographic', 'census', 'birth', 'death', 'migration', 'fertility',
        'mortality', 'age structure', 'regional'
    ]
}

STOP_WORDS = frozenset([
    'the', 'a', 'an', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for', 'of', 'with',
    'by', 'is', 'are', 'was', 'were', 'be', 'been', 'being', 'have', 'has', 'had', 'do',
    'does', 'did', 'will', 'would', 'could', 'should', 'may', 'might', 'must', 'can',
    'shall'
])

# Checked in order, first match wins
INTENT_PATTERNS: List[Tuple[re.Pattern, Intent]] = [
    (re.compile(r'\b(what|which|where|how many|how much)\b', re.IGNORECASE), Intent.SEARCH),
    (re.compile(r'\b(show me|tell me|give me)\b', re.IGNORECASE), Intent.SEARCH),
    (re.compile(r'\b(compare|versus|vs|difference)\b', re.IGNORECASE), Intent.COMPARISON),
    (re.compile(r'\b(trend|change|over time|since|from.*to)\b', re.IGNORECASE), Intent.TREND)
]

ENTITY_PATTERNS: List[Tuple[str, re.Pattern]] = [
    ('state', re.compile(r'\b(?:act|nsw|qld|sa|tas|vic|wa|nt)\b', re.IGNORECASE)),
    ('year', re.compile(r'\b(?:201\d|202\d)\b')),
    ('month', re.compile(
        r'\b(?:january|february|march|april|may|june|july|august|september|october|november|december)\b',
        re.IGNORECASE
    ))
]

SYNONYMS: Dict[str, List[str]] = {
    'employment': ['jobs', 'workforce', 'labor'],
    'unemployment': ['jobless', 'out of work'],
    'housing': ['accommodation', 'shelter', 'dwelling'],
    'aged care': ['elderly care', 'senior care', 'geriatric care'],
    'education': ['learning', 'training', 'qualification'],
    'inequality': ['disparity', 'gap', 'imbalance']
}

DOMAIN_SUGGESTIONS: Dict[str, List[str]] = {
    'labour': ['by state', 'trends', 'by age group', 'and skills'],
    'health': ['by region', 'statistics', 'and demographics'],
    'housing': ['affordability', 'by location', 'and income']
}

BASE_CONFIDENCE = 0.5
MAX_KEYWORD_CONFIDENCE = 0.3
MAX_CONFIDENCE = 0.9
MAX_SUGGESTIONS = 4


class QueryProcessor:
    """
    Interprets free-text dataset queries

    All steps are deterministic and free of I/O, so a single instance can
    be shared between concurrent request handlers.
    """

    def __init__(self,
                 domain_keywords: Optional[Dict[str, List[str]]] = None,
                 stop_words: Optional[frozenset] = None):
        """
        Initialize query processor

        Args:
            domain_keywords: Domain term table (defaults to DOMAIN_KEYWORDS)
            stop_words: Words dropped during keyword extraction
        """
        self.domain_keywords = domain_keywords or DOMAIN_KEYWORDS
        self.stop_words = stop_words or STOP_WORDS

    def interpret(self, query: str) -> StructuredQuery:
        """
        Interpret a raw query

        Never raises: on an internal error the result degrades to the raw
        whitespace-split text with intent 'search' and confidence 0.5.

        Args:
            query: Raw search text

        Returns:
            StructuredQuery for the text
        """
        try:
            normalized = self._normalize(query)
            keywords = self._extract_keywords(normalized)
            domains = self._detect_domains(normalized, keywords)
            intent = self._detect_intent(normalized)
            entities = self._extract_entities(normalized)
            confidence = self._calculate_confidence(keywords, domains, entities)

            return StructuredQuery(
                original_query=query,
                keywords=tuple(keywords),
                domains=tuple(domains),
                intent=intent,
                entities=tuple(entities),
                confidence=confidence
            )

        except Exception as e:
            logger.warning(f"Query interpretation failed for {query!r}, using fallback: {e}")
            return self._fallback(query)

    def _fallback(self, query) -> StructuredQuery:
        text = query if isinstance(query, str) else ('' if query is None else str(query))
        return StructuredQuery(
            original_query=text,
            keywords=tuple(text.split()),
            domains=(),
            intent=Intent.SEARCH,
            entities=(),
            confidence=BASE_CONFIDENCE
        )

    def _normalize(self, query: str) -> str:
        return query.lower().strip()

    def _extract_keywords(self, normalized: str) -> List[str]:
        """Strip punctuation, drop short tokens and stop words, deduplicate"""
        words = re.sub(r'[^\w\s]', ' ', normalized).split()

        keywords = [
            word for word in words
            if len(word) > 2 and word not in self.stop_words
        ]

        return list(dict.fromkeys(keywords))

    def _detect_domains(self, normalized: str, keywords: List[str]) -> List[str]:
        """
        Score each domain against the extracted keywords

        Args:
            normalized: Lowercased, trimmed query
            keywords: Extracted keywords

        Returns:
            Domains with a positive score, highest first
        """
        domain_scores: Dict[str, int] = {}

        for domain, terms in self.domain_keywords.items():
            score = 0

            for keyword in keywords:
                if any(keyword in term or term in keyword for term in terms):
                    score += 1

            # Direct mention of the domain name
            if domain in normalized:
                score += 2

            if score > 0:
                domain_scores[domain] = score

        # sorted() is stable, so ties keep table order
        ranked = sorted(domain_scores.items(), key=lambda item: item[1], reverse=True)
        return [domain for domain, _ in ranked]

    def _detect_intent(self, normalized: str) -> Intent:
        for pattern, intent in INTENT_PATTERNS:
            if pattern.search(normalized):
                return intent

        return Intent.SEARCH

    def _extract_entities(self, normalized: str) -> List[str]:
        """Collect state codes, years and month names"""
        entities = []

        for _, pattern in ENTITY_PATTERNS:
            entities.extend(pattern.findall(normalized))

        return list(dict.fromkeys(entities))

    def _calculate_confidence(self,
                              keywords: List[str],
                              domains: List[str],
                              entities: List[str]) -> float:
        confidence = BASE_CONFIDENCE
        confidence += min(len(keywords) * 0.1, MAX_KEYWORD_CONFIDENCE)
        confidence += len(domains) * 0.1
        confidence += len(entities) * 0.1

        return round(min(confidence, MAX_CONFIDENCE), 2)

    def get_related_terms(self, query: str, processed: Optional[StructuredQuery] = None) -> List[str]:
        """
        Suggest related terms for a query

        Args:
            query: Raw search text
            processed: Already interpreted query, if available

        Returns:
            Deduplicated list of domain terms and synonyms
        """
        if processed is None:
            processed = self.interpret(query)

        related_terms = []

        for domain in processed.domains:
            related_terms.extend(self.domain_keywords.get(domain, [])[:3])

        for keyword in processed.keywords:
            for term, synonyms in SYNONYMS.items():
                if term in keyword or keyword in term:
                    related_terms.extend(synonyms)

        return list(dict.fromkeys(related_terms))

    def generate_suggestions(self, query: str, processed: Optional[StructuredQuery] = None) -> List[str]:
        """
        Suggest refined queries based on detected domains and entities

        Args:
            query: Raw search text
            processed: Already interpreted query, if available

        Returns:
            Up to four suggested queries
        """
        if processed is None:
            processed = self.interpret(query)

        suggestions = []

        for domain in processed.domains:
            for suffix in DOMAIN_SUGGESTIONS.get(domain, []):
                suggestions.append(f"{query} {suffix}")

        # Time-based variants when no year was mentioned
        if not any(re.search(r'\d{4}', entity) for entity in processed.entities):
            suggestions.extend([f"{query} in 2023", f"{query} since 2015"])

        return suggestions[:MAX_SUGGESTIONS]


_default_processor = QueryProcessor()


def interpret(query: str) -> StructuredQuery:
    """Interpret a query with the default domain table"""
    return _default_processor.interpret(query)
