"""
FastAPI web application for government dataset discovery
JSON endpoints for search, recommendations and catalogue browsing
"""

from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import Optional, List
import logging
import uuid

from catalog.models import Dataset, ACCESSIBILITY_CLASSES, ACCESSIBILITY_PUBLIC
from recommend.engine import RecommendationEngine, InvalidRecommendationRequest
from search.query_processor import QueryProcessor
from search.search_engine import DatasetSearchEngine
from storage.database import DatabaseManager
from utils.config import Settings

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Government Data Discovery",
    description="Natural-language search and recommendations over Australian government datasets",
    version="1.0.0"
)

# Initialize components (lazy loading)
settings = None
db_manager = None
query_processor = None
search_engine = None
recommendation_engine = None


def get_settings():
    global settings
    if settings is None:
        settings = Settings.from_environment()
    return settings


def get_db_manager():
    global db_manager
    if db_manager is None:
        db_manager = DatabaseManager(get_settings().database_path)
    return db_manager


def get_query_processor():
    global query_processor
    if query_processor is None:
        query_processor = QueryProcessor()
    return query_processor


def get_search_engine():
    global search_engine
    if search_engine is None:
        search_engine = DatasetSearchEngine(
            get_db_manager(),
            query_processor=get_query_processor(),
            result_limit=get_settings().search_result_limit
        )
    return search_engine


def get_recommendation_engine():
    global recommendation_engine
    if recommendation_engine is None:
        config = get_settings()
        recommendation_engine = RecommendationEngine(
            get_db_manager(),
            query_processor=get_query_processor(),
            timeout=config.store_timeout_seconds,
            max_workers=config.recommendation_workers
        )
    return recommendation_engine


def _split_param(value: Optional[str]) -> Optional[List[str]]:
    """Split a comma-separated query parameter, dropping empty items"""
    if not value:
        return None
    items = [item.strip() for item in value.split(',')]
    return [item for item in items if item]


class DatasetCreate(BaseModel):
    """Request body for registering a dataset"""
    name: str
    description: str = ''
    agency_id: str
    keywords: List[str] = []
    domains: List[str] = []
    tags: List[str] = []
    accessibility: str = ACCESSIBILITY_PUBLIC
    frequency: Optional[str] = None
    format: Optional[str] = None
    api_endpoint: Optional[str] = None
    download_url: Optional[str] = None
    data_portal_url: Optional[str] = None
    collection_date: Optional[str] = None


# API Endpoints (plain def: store and engine calls block, so they run in the threadpool)

@app.get("/api/search")
def api_search(
    q: Optional[str] = Query(None),
    domain: Optional[str] = Query(None),
    agency: Optional[str] = Query(None)
):
    """API endpoint for natural-language dataset search"""

    if not q or not q.strip():
        return JSONResponse(
            status_code=400,
            content={"error": "Query parameter 'q' is required"}
        )

    try:
        response = get_search_engine().search(q, domain_filter=domain, agency_filter=agency)
        return response.to_dict()

    except Exception as e:
        logger.error(f"API search error: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error"}
        )


@app.get("/api/recommendations")
def api_recommendations(
    type: Optional[str] = Query(None),
    datasetId: Optional[str] = Query(None),
    query: Optional[str] = Query(None),
    domains: Optional[str] = Query(None),
    keywords: Optional[str] = Query(None),
    datasetIds: Optional[str] = Query(None),
    limit: Optional[str] = Query(None)
):
    """API endpoint for dataset recommendations"""

    params = {
        'dataset_id': datasetId,
        'query': query,
        'domains': _split_param(domains),
        'keywords': _split_param(keywords),
        'dataset_ids': _split_param(datasetIds),
        'limit': limit
    }

    try:
        recommendations = get_recommendation_engine().recommend(type or '', params)

    except InvalidRecommendationRequest as e:
        return JSONResponse(
            status_code=400,
            content={"error": str(e)}
        )
    except Exception as e:
        logger.error(f"API recommendations error: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error"}
        )

    return {
        "type": type,
        "recommendations": [recommendation.to_dict() for recommendation in recommendations],
        "total": len(recommendations)
    }


@app.get("/api/datasets")
def api_datasets(
    domain: Optional[str] = Query(None),
    agency: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0)
):
    """API endpoint for browsing the catalogue"""

    try:
        db = get_db_manager()
        datasets = db.list_datasets(domain=domain, agency_code=agency, limit=limit, offset=offset)
        total = db.count_datasets(domain=domain, agency_code=agency)

        return {
            "datasets": [dataset.to_dict() for dataset in datasets],
            "total": total,
            "limit": limit,
            "offset": offset
        }

    except Exception as e:
        logger.error(f"API datasets error: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error"}
        )


@app.post("/api/datasets", status_code=201)
def api_create_dataset(body: DatasetCreate):
    """API endpoint for registering a new dataset"""

    if body.accessibility not in ACCESSIBILITY_CLASSES:
        return JSONResponse(
            status_code=400,
            content={"error": f"accessibility must be one of {', '.join(ACCESSIBILITY_CLASSES)}"}
        )

    db = get_db_manager()
    if body.agency_id not in {agency.id for agency in db.get_agencies()}:
        return JSONResponse(
            status_code=400,
            content={"error": f"Unknown agency: {body.agency_id}"}
        )

    dataset = Dataset(id=uuid.uuid4().hex, **body.model_dump())

    try:
        if not db.store_dataset(dataset):
            return JSONResponse(
                status_code=500,
                content={"error": "Failed to store dataset"}
            )
        stored = db.find_by_id(dataset.id)

    except Exception as e:
        logger.error(f"API create dataset error: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error"}
        )

    logger.info(f"Registered dataset {dataset.id}: {dataset.name}")
    return (stored or dataset).to_dict()


@app.get("/api/datasets/{dataset_id}")
def api_dataset(dataset_id: str):
    """API endpoint for an individual dataset with its relations"""

    try:
        db = get_db_manager()
        dataset = db.find_by_id(dataset_id)

        if not dataset:
            return JSONResponse(
                status_code=404,
                content={"error": "Dataset not found"}
            )

        relations = []
        for relation in db.get_relations(dataset_id):
            counterpart = relation.counterpart(dataset_id)
            relation_data = relation.to_dict()
            relation_data['direction'] = 'outgoing' if relation.from_id == dataset_id else 'incoming'
            relation_data['dataset'] = counterpart.to_dict() if counterpart else None
            relations.append(relation_data)

        data = dataset.to_dict()
        data['relations'] = relations
        return data

    except Exception as e:
        logger.error(f"API dataset error: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error"}
        )


# Health check
@app.get("/health")
def health_check():
    """Health check endpoint"""

    try:
        db = get_db_manager()
        stats = db.get_statistics()

        if not stats:
            raise RuntimeError("statistics unavailable")

        return {
            "status": "healthy",
            "total_datasets": stats.get("total_datasets", 0),
            "total_agencies": stats.get("total_agencies", 0),
            "total_relations": stats.get("total_relations", 0)
        }

    except Exception as e:
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "error": str(e)
            }
        )


if __name__ == "__main__":
    import uvicorn
    config = get_settings()
    uvicorn.run(app, host=config.web_host, port=config.web_port)
