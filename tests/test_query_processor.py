"""
Tests for query interpretation, related terms and suggestions
"""

import pytest

from catalog.models import Intent, StructuredQuery
from search.query_processor import QueryProcessor, interpret


@pytest.fixture
def processor():
    return QueryProcessor()


class TestInterpret:

    def test_aged_care_trend_query(self, processor):
        result = processor.interpret("aged care workforce trends by region since 2015")

        assert result.domains[:2] == ('labour', 'health')
        assert set(result.domains) == {'labour', 'health', 'ageing', 'population'}
        assert result.intent is Intent.TREND
        assert result.entities == ('2015',)
        assert result.confidence == 0.9

    def test_keywords_drop_stop_words_short_tokens_and_punctuation(self, processor):
        result = processor.interpret("What is the unemployment rate, in NSW?")

        assert result.keywords == ('what', 'unemployment', 'rate', 'nsw')
        assert result.original_query == "What is the unemployment rate, in NSW?"

    def test_keywords_are_deduplicated_in_order(self, processor):
        result = processor.interpret("housing housing rent housing")

        assert result.keywords == ('housing', 'rent')

    def test_domain_name_mention_outranks_single_term_match(self, processor):
        result = processor.interpret("compare housing vs income")

        assert result.domains[0] == 'housing'
        assert 'labour' in result.domains
        assert 'inequality' in result.domains

    def test_domain_ties_keep_table_order(self, processor):
        result = processor.interpret("wage poverty")

        assert result.domains == ('labour', 'inequality')

    @pytest.mark.parametrize("query, intent", [
        ("compare housing vs income", Intent.COMPARISON),
        ("difference between states", Intent.COMPARISON),
        ("employment change over time", Intent.TREND),
        ("wages from 2015 to 2020", Intent.TREND),
        ("what datasets cover pensions", Intent.SEARCH),
        ("show me hospital waiting data", Intent.SEARCH),
        ("census housing", Intent.SEARCH),
    ])
    def test_intent_detection(self, processor, query, intent):
        assert processor.interpret(query).intent is intent

    def test_first_matching_intent_pattern_wins(self, processor):
        # interrogative is checked before comparison
        assert processor.interpret("which regions compare best").intent is Intent.SEARCH

    def test_entities_states_years_months(self, processor):
        result = processor.interpret("nsw vic employment march 2021 and 2021")

        assert result.entities == ('nsw', 'vic', '2021', 'march')

    def test_years_outside_range_are_not_entities(self, processor):
        assert processor.interpret("census 1999 and 2031").entities == ()

    def test_confidence_bounds(self, processor):
        assert processor.interpret("").confidence == 0.5
        assert processor.interpret("xyz").confidence == 0.6
        assert processor.interpret("housing").confidence == 0.7

    def test_empty_query(self, processor):
        result = processor.interpret("   ")

        assert result.keywords == ()
        assert result.domains == ()
        assert result.intent is Intent.SEARCH
        assert result.entities == ()

    def test_failure_falls_back_to_plain_search(self, processor):
        result = processor.interpret(None)

        assert isinstance(result, StructuredQuery)
        assert result.keywords == ()
        assert result.intent is Intent.SEARCH
        assert result.confidence == 0.5

    @pytest.mark.parametrize('query', [
        "How has the aged care workforce changed in NSW since 2020?",
        "compare housing vs income",
        "wage poverty",
        "   ",
        "",
        None,
    ])
    def test_interpretation_is_repeatable(self, processor, query):
        assert processor.interpret(query) == processor.interpret(query)

    def test_structured_query_is_immutable(self, processor):
        result = processor.interpret("housing")

        with pytest.raises(AttributeError):
            result.intent = Intent.TREND

    def test_module_level_interpret_uses_default_tables(self):
        assert interpret("hospital patients").domains == ('health',)

    def test_custom_domain_table(self):
        processor = QueryProcessor(domain_keywords={'transport': ['road', 'rail']})

        assert processor.interpret("rail freight").domains == ('transport',)


class TestRelatedTerms:

    def test_domain_terms_and_synonyms(self, processor):
        related = processor.get_related_terms("aged care workforce")

        assert related[:3] == ['employment', 'unemployment', 'workforce']
        assert 'health' in related
        assert 'elderly care' in related
        assert len(related) == len(set(related))

    def test_reuses_processed_query(self, processor):
        processed = processor.interpret("unemployment")

        assert processor.get_related_terms("ignored", processed) == \
            processor.get_related_terms("unemployment")

    def test_no_domains_no_synonyms(self, processor):
        assert processor.get_related_terms("zzz") == []


class TestSuggestions:

    def test_domain_suffixes_then_truncated(self, processor):
        suggestions = processor.generate_suggestions("housing costs")

        assert suggestions == [
            "housing costs affordability",
            "housing costs by location",
            "housing costs and income",
            "housing costs in 2023",
        ]

    def test_time_variants_when_no_year(self, processor):
        assert processor.generate_suggestions("zzz") == ["zzz in 2023", "zzz since 2015"]

    def test_no_time_variants_when_year_present(self, processor):
        suggestions = processor.generate_suggestions("unemployment 2020")

        assert len(suggestions) == 4
        assert all("since 2015" not in suggestion for suggestion in suggestions)
        assert suggestions[0] == "unemployment 2020 by state"
