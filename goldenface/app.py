"""
GoldenFace API - facial proportion scoring service
Main application entry point
"""
import atexit
import logging
import sys
from typing import Optional

from flask import Flask, jsonify
from flask_cors import CORS

from goldenface.config import Config, get_config
from goldenface.domain.interfaces import ScanRepositoryInterface, StatsStoreInterface, VectorIndexInterface
from goldenface.application.analysis_service import AnalysisService
from goldenface.application.match_service import SimilarityMatcher
from goldenface.application.stats_service import StatisticsAccumulator
from goldenface.api.routes import api, init_routes

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
    ]
)
logger = logging.getLogger(__name__)


def build_vector_index(config: Config) -> VectorIndexInterface:
    """Vector index selected by VECTOR_BACKEND"""
    if config.VECTOR_BACKEND == "memory":
        from goldenface.infrastructure.memory_index import InMemoryVectorIndex
        from goldenface.seed import DEFAULT_REFERENCES, load_references
        path = config.REFERENCES_FILE or DEFAULT_REFERENCES
        references = load_references(path)
        logger.info(f"Preloaded {len(references)} references from {path}")
        return InMemoryVectorIndex(references)

    from goldenface.infrastructure.pinecone_index import PineconeVectorIndex
    index = PineconeVectorIndex(
        host=config.PINECONE_HOST,
        api_key=config.PINECONE_API_KEY,
        namespace=config.PINECONE_NAMESPACE,
        timeout=config.MATCH_TIMEOUT,
    )
    if not index.is_ready():
        logger.warning("Pinecone not configured; matches will be unavailable")
    return index


def build_stores(config: Config):
    """(stats store, scan repository) selected by STORE_BACKEND"""
    if config.STORE_BACKEND == "memory":
        from goldenface.infrastructure.memory_store import InMemoryScanRepository, InMemoryStatsStore
        return InMemoryStatsStore(), InMemoryScanRepository()

    from goldenface.infrastructure.mongo_store import MongoScanRepository, MongoStatsStore, connect
    db = connect(config.MONGODB_URI, config.MONGODB_DB)
    return MongoStatsStore(db["globalstats"]), MongoScanRepository(db["scans"])


def create_app(
    config: Optional[Config] = None,
    vector_index: Optional[VectorIndexInterface] = None,
    stats_store: Optional[StatsStoreInterface] = None,
    scan_repository: Optional[ScanRepositoryInterface] = None,
) -> Flask:
    """Application factory"""
    config = config or get_config()

    # Create Flask app
    app = Flask(__name__)
    app.config['DEBUG'] = config.DEBUG
    app.config['TESTING'] = config.TESTING

    # Enable CORS
    CORS(app, origins=config.CORS_ORIGINS)

    # Initialize infrastructure
    logger.info("Initializing infrastructure...")
    try:
        if vector_index is None:
            vector_index = build_vector_index(config)
        if stats_store is None or scan_repository is None:
            default_stats, default_scans = build_stores(config)
            stats_store = stats_store or default_stats
            scan_repository = scan_repository or default_scans
    except Exception as e:
        logger.error(f"Failed to initialize infrastructure: {e}")
        raise

    # Initialize application service
    analysis_service = AnalysisService(
        matcher=SimilarityMatcher(vector_index, default_top_k=config.MATCH_TOP_K),
        accumulator=StatisticsAccumulator(stats_store, stat_id=config.STATS_ID),
        scans=scan_repository,
        scoring=config.scoring_config(),
        match_timeout=config.MATCH_TIMEOUT,
        buffer_capacity=config.BUFFER_CAPACITY,
        min_samples=config.MIN_SAMPLES,
        scan_ttl_days=config.SCAN_TTL_DAYS,
    )
    app.extensions['analysis_service'] = analysis_service
    atexit.register(analysis_service.close)

    # Initialize routes with service
    init_routes(analysis_service, frame_limit=config.MAX_FRAMES)

    # Register blueprint
    app.register_blueprint(api, url_prefix='/api')

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"success": False, "error": "Endpoint not found"}), 404

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Server error: {error}")
        return jsonify({"success": False, "error": "Internal server error"}), 500

    logger.info("Application initialized successfully")
    return app


def main():
    """Main entry point"""
    config = get_config()

    logger.info(f"Starting GoldenFace API on {config.HOST}:{config.PORT}")
    logger.info(f"Vector backend: {config.VECTOR_BACKEND}")
    logger.info(f"Store backend: {config.STORE_BACKEND}")

    app = create_app(config)
    app.run(
        host=config.HOST,
        port=config.PORT,
        debug=config.DEBUG,
        threaded=True,
    )


if __name__ == '__main__':
    main()
