"""
Command-line interface for government dataset discovery
"""

import click
import json
import logging
import os
from typing import Optional, List

from dotenv import load_dotenv

from recommend.engine import RecommendationEngine, InvalidRecommendationRequest
from search.query_processor import QueryProcessor
from search.search_engine import DatasetSearchEngine
from storage.database import DatabaseManager
from storage.seed import seed_database
from utils.config import Settings

# Load environment variables
load_dotenv('config.env')

logger = logging.getLogger(__name__)


def _split_option(value: Optional[str]) -> Optional[List[str]]:
    if not value:
        return None
    return [item.strip() for item in value.split(',') if item.strip()]


def _get_db(ctx) -> DatabaseManager:
    """Database manager shared by the commands of one invocation"""
    if ctx.obj.get('db') is None:
        ctx.obj['db'] = DatabaseManager(ctx.obj['database'])
    return ctx.obj['db']


def _echo_dataset(index: int, dataset, score: Optional[float] = None):
    click.echo(f"{index}. {dataset.name}")
    if score is not None:
        click.echo(f"   📊 Relevance: {score:g}")
    if dataset.agency_name:
        click.echo(f"   🏛️  Agency: {dataset.agency_name}")
    if dataset.domains:
        click.echo(f"   🏷️  Domains: {', '.join(dataset.domains)}")
    if dataset.is_api_accessible:
        click.echo(f"   🔌 Live API: {dataset.api_endpoint}")
    if dataset.description:
        desc = dataset.description[:200] + "..." if len(dataset.description) > 200 else dataset.description
        click.echo(f"   📝 {desc}")
    click.echo()


@click.group()
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.option('--database', '-d', help='Path to SQLite database (overrides DATABASE_PATH)')
@click.pass_context
def cli(ctx, debug, database):
    """Government Data Discovery - find and connect Australian government datasets"""

    if debug:
        logging.getLogger().setLevel(logging.DEBUG)

    settings = Settings.from_environment()

    # Initialize context
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug
    ctx.obj['settings'] = settings
    ctx.obj['database'] = database or settings.database_path
    ctx.obj['db'] = None


@cli.command()
@click.argument('query')
@click.option('--domain', help='Only datasets in this domain')
@click.option('--agency', '-a', help='Only datasets from this agency code (e.g. ABS)')
@click.option('--limit', '-l', default=10, help='Maximum results to display')
@click.option('--recommend', '-r', 'with_recommendations', is_flag=True,
              help='Also show recommendations for the query')
@click.option('--export', '-e', help='Export full response to a JSON file')
@click.pass_context
def search(ctx, query, domain, agency, limit, with_recommendations, export):
    """Search the dataset catalogue in natural language"""

    try:
        settings = ctx.obj['settings']
        db = _get_db(ctx)
        engine = DatasetSearchEngine(db, result_limit=settings.search_result_limit)

        response = engine.search(query, domain_filter=domain, agency_filter=agency)
        structured = response.structured_query

        click.echo(f"\n🔍 Search results for: '{query}'")
        click.echo(f"Intent: {structured.intent.value} | Domains: {', '.join(structured.domains) or 'none'} "
                   f"| Confidence: {structured.confidence}")
        click.echo(f"Found {response.total} datasets\n")

        for i, result in enumerate(response.results[:limit], 1):
            _echo_dataset(i, result.dataset, result.relevance_score)

        if response.related_terms:
            click.echo(f"🔗 Related terms: {', '.join(response.related_terms)}")
        if response.suggestions:
            click.echo("💡 Try also:")
            for suggestion in response.suggestions:
                click.echo(f"   • {suggestion}")

        if with_recommendations:
            recommender = RecommendationEngine(
                db,
                timeout=settings.store_timeout_seconds,
                max_workers=settings.recommendation_workers
            )
            recommendations = recommender.for_structured_query(
                structured, limit=settings.default_recommendation_limit
            )
            click.echo(f"\n⭐ Recommended ({len(recommendations)}):")
            for recommendation in recommendations:
                click.echo(f"   • {recommendation.dataset.name} ({recommendation.score:.2f}) - {recommendation.reason}")

        if export:
            with open(export, 'w', encoding='utf-8') as f:
                json.dump(response.to_dict(), f, indent=2, ensure_ascii=False)
            click.echo(f"\n💾 Exported results to {export}")

        if response.total == 0:
            click.echo("No datasets found. Run 'python main.py seed' to load the sample catalogue.")

    except Exception as e:
        click.echo(f"❌ Search failed: {e}", err=True)
        if ctx.obj['debug']:
            raise


@cli.command()
@click.argument('query')
@click.option('--json', 'as_json', is_flag=True, help='Print the structured query as JSON')
@click.pass_context
def interpret(ctx, query, as_json):
    """Show how a query is understood (keywords, domains, intent, entities)"""

    processor = QueryProcessor()
    structured = processor.interpret(query)
    related_terms = processor.get_related_terms(query, structured)
    suggestions = processor.generate_suggestions(query, structured)

    if as_json:
        click.echo(json.dumps({
            'processed_query': structured.to_dict(),
            'related_terms': related_terms,
            'suggestions': suggestions
        }, indent=2))
        return

    click.echo(f"\n🧠 Interpretation of: '{query}'")
    click.echo(f"   Keywords:   {', '.join(structured.keywords) or '-'}")
    click.echo(f"   Domains:    {', '.join(structured.domains) or '-'}")
    click.echo(f"   Intent:     {structured.intent.value}")
    click.echo(f"   Entities:   {', '.join(structured.entities) or '-'}")
    click.echo(f"   Confidence: {structured.confidence}")
    if related_terms:
        click.echo(f"   Related:    {', '.join(related_terms)}")
    for suggestion in suggestions:
        click.echo(f"   💡 {suggestion}")


@cli.command()
@click.argument('kind', type=click.Choice(['related', 'search', 'trending', 'complementary']))
@click.option('--dataset-id', help='Seed dataset for related recommendations')
@click.option('--query', '-q', help='Query text for search recommendations')
@click.option('--domains', help='Comma-separated domains for search recommendations')
@click.option('--keywords', help='Comma-separated keywords for search recommendations')
@click.option('--dataset-ids', help='Comma-separated dataset ids for complementary recommendations')
@click.option('--limit', '-l', type=int, help='Maximum recommendations')
@click.pass_context
def recommend(ctx, kind, dataset_id, query, domains, keywords, dataset_ids, limit):
    """Recommend related, search-context, trending or complementary datasets"""

    try:
        settings = ctx.obj['settings']
        engine = RecommendationEngine(
            _get_db(ctx),
            timeout=settings.store_timeout_seconds,
            max_workers=settings.recommendation_workers
        )

        recommendations = engine.recommend(kind, {
            'dataset_id': dataset_id,
            'query': query,
            'domains': _split_option(domains),
            'keywords': _split_option(keywords),
            'dataset_ids': _split_option(dataset_ids),
            'limit': limit
        })

        click.echo(f"\n⭐ {kind.capitalize()} recommendations ({len(recommendations)}):\n")
        for i, recommendation in enumerate(recommendations, 1):
            click.echo(f"{i}. {recommendation.dataset.name} [{recommendation.dataset.id}]")
            click.echo(f"   📊 Score: {recommendation.score:.2f} ({recommendation.strategy.value})")
            click.echo(f"   💬 {recommendation.reason}")

        if not recommendations:
            click.echo("   No recommendations found.")

    except InvalidRecommendationRequest as e:
        click.echo(f"❌ Invalid request: {e}", err=True)
        ctx.exit(2)
    except Exception as e:
        click.echo(f"❌ Recommendation failed: {e}", err=True)
        if ctx.obj['debug']:
            raise


@cli.command()
@click.option('--domain', help='Filter by domain')
@click.option('--agency', '-a', help='Filter by agency code')
@click.option('--limit', '-l', default=50, help='Number of datasets to display')
@click.option('--offset', default=0, help='Number of datasets to skip')
@click.pass_context
def datasets(ctx, domain, agency, limit, offset):
    """List datasets, most recently updated first"""

    try:
        db = _get_db(ctx)
        items = db.list_datasets(domain=domain, agency_code=agency, limit=limit, offset=offset)
        total = db.count_datasets(domain=domain, agency_code=agency)

        click.echo(f"\n📚 Datasets ({len(items)} of {total}):\n")
        for dataset in items:
            agency_code = dataset.agency.code if dataset.agency else '-'
            click.echo(f"   • [{agency_code}] {dataset.name} ({dataset.id})")

        if total == 0:
            click.echo("   No datasets found!")
            click.echo("   Use 'python main.py seed' to load the sample catalogue.")

    except Exception as e:
        click.echo(f"❌ Failed to list datasets: {e}", err=True)
        if ctx.obj['debug']:
            raise


@cli.command()
@click.argument('dataset_id')
@click.pass_context
def show(ctx, dataset_id):
    """Show a dataset with its relations"""

    try:
        db = _get_db(ctx)
        dataset = db.find_by_id(dataset_id)
        relations = db.get_relations(dataset_id) if dataset else []

    except Exception as e:
        click.echo(f"❌ Failed to show dataset: {e}", err=True)
        if ctx.obj['debug']:
            raise
        return

    if not dataset:
        click.echo(f"❌ Dataset not found: {dataset_id}", err=True)
        ctx.exit(1)

    click.echo(f"\n📄 {dataset.name}")
    click.echo(f"   ID: {dataset.id}")
    if dataset.agency:
        click.echo(f"   Agency: {dataset.agency.name} ({dataset.agency.code})")
    click.echo(f"   Accessibility: {dataset.accessibility}")
    if dataset.frequency:
        click.echo(f"   Frequency: {dataset.frequency}")
    if dataset.format:
        click.echo(f"   Format: {dataset.format}")
    click.echo(f"   Domains: {', '.join(dataset.domains) or '-'}")
    click.echo(f"   Keywords: {', '.join(dataset.keywords) or '-'}")
    click.echo(f"   Tags: {', '.join(dataset.tags) or '-'}")
    if dataset.api_endpoint:
        click.echo(f"   API: {dataset.api_endpoint}")
    if dataset.data_portal_url:
        click.echo(f"   Portal: {dataset.data_portal_url}")
    if dataset.description:
        click.echo(f"\n   {dataset.description}")

    if relations:
        click.echo(f"\n🔗 Relations ({len(relations)}):")
        for relation in relations:
            counterpart = relation.counterpart(dataset_id)
            name = counterpart.name if counterpart else relation.counterpart_id(dataset_id)
            arrow = '→' if relation.from_id == dataset_id else '←'
            click.echo(f"   {arrow} {relation.relation_type}: {name}")


@cli.command()
@click.pass_context
def seed(ctx):
    """Load the sample Australian government catalogue"""

    try:
        db = _get_db(ctx)
        click.echo(f"🌱 Seeding catalogue into {ctx.obj['database']}")

        counts = seed_database(db, show_progress=True)

        click.echo(f"✅ Stored {counts['agencies']} agencies, {counts['datasets']} datasets "
                   f"and {counts['relations']} relations")

    except Exception as e:
        click.echo(f"❌ Seeding failed: {e}", err=True)
        if ctx.obj['debug']:
            raise


@cli.command()
@click.pass_context
def stats(ctx):
    """Show catalogue statistics"""

    try:
        db = _get_db(ctx)
        db_stats = db.get_statistics()

        click.echo("📊 Government Data Discovery Statistics\n")

        click.echo("🗄️  Database:")
        click.echo(f"   Datasets: {db_stats.get('total_datasets', 0):,}")
        click.echo(f"   Agencies: {db_stats.get('total_agencies', 0):,}")
        click.echo(f"   Relations: {db_stats.get('total_relations', 0):,}")
        click.echo(f"   Database size: {db_stats.get('database_size', 0) / (1024*1024):.1f} MB")

        if db_stats.get('agencies'):
            click.echo(f"\n🏛️  By agency:")
            for code, count in db_stats['agencies'].items():
                click.echo(f"     • {code}: {count:,} datasets")

        if db_stats.get('domains'):
            click.echo(f"\n🏷️  By domain:")
            for domain, count in db_stats['domains'].items():
                click.echo(f"     • {domain}: {count:,} datasets")

        if db_stats.get('accessibility'):
            click.echo(f"\n🔓 By accessibility:")
            for accessibility, count in db_stats['accessibility'].items():
                click.echo(f"     • {accessibility}: {count:,} datasets")

    except Exception as e:
        click.echo(f"❌ Failed to get statistics: {e}", err=True)
        if ctx.obj['debug']:
            raise


@cli.command()
@click.option('--host', help='Host to bind to (default WEB_HOST)')
@click.option('--port', type=int, help='Port to bind to (default WEB_PORT)')
@click.option('--reload', is_flag=True, help='Enable auto-reload for development')
@click.pass_context
def serve(ctx, host, port, reload):
    """Start the JSON API server"""

    try:
        import uvicorn

        settings = ctx.obj['settings']
        host = host or settings.web_host
        port = port or settings.web_port

        # The server process builds its own settings from the environment
        os.environ['DATABASE_PATH'] = ctx.obj['database']

        click.echo(f"🌐 Starting API at http://{host}:{port}")
        click.echo("   Press Ctrl+C to stop")

        uvicorn.run(
            "web.app:app",
            host=host,
            port=port,
            reload=reload,
            log_level="info"
        )

    except Exception as e:
        click.echo(f"❌ Failed to start web server: {e}", err=True)
        if ctx.obj['debug']:
            raise


def main():
    """Main entry point"""
    cli()


if __name__ == '__main__':
    main()
