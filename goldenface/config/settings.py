"""
Application configuration settings
"""
import os
from dotenv import load_dotenv

from goldenface.domain.models import ScoringConfig

load_dotenv()


class Config:
    """Base configuration"""
    # Flask
    DEBUG = os.getenv("DEBUG", "false").lower() == "true"
    TESTING = False
    HOST = os.getenv("HOST", "0.0.0.0")
    PORT = int(os.getenv("PORT", 5000))
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")

    # Vector similarity service
    VECTOR_BACKEND = os.getenv("VECTOR_BACKEND", "pinecone")  # pinecone, memory
    PINECONE_API_KEY = os.getenv("PINECONE_API_KEY", "")
    PINECONE_HOST = os.getenv("PINECONE_HOST", "")
    PINECONE_NAMESPACE = os.getenv("PINECONE_NAMESPACE") or None
    MATCH_TOP_K = int(os.getenv("MATCH_TOP_K", 3))
    MATCH_TIMEOUT = float(os.getenv("MATCH_TIMEOUT", 5.0))  # seconds
    REFERENCES_FILE = os.getenv("REFERENCES_FILE") or None  # memory backend preload; bundled set if unset

    # Document store
    STORE_BACKEND = os.getenv("STORE_BACKEND", "mongo")  # mongo, memory
    MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
    MONGODB_DB = os.getenv("MONGODB_DB", "goldenface")
    SCAN_TTL_DAYS = int(os.getenv("SCAN_TTL_DAYS", 7))
    STATS_ID = os.getenv("STATS_ID", "global_tracker")

    # Capture stabilization
    BUFFER_CAPACITY = int(os.getenv("BUFFER_CAPACITY", 10))
    MIN_SAMPLES = int(os.getenv("MIN_SAMPLES", 5))
    MAX_FRAMES = int(os.getenv("MAX_FRAMES", 120))  # Max frames per analyze request

    # Scoring
    SCORING_SENSITIVITY = float(os.getenv("SCORING_SENSITIVITY", 3.0))

    def scoring_config(self) -> ScoringConfig:
        """Scoring parameters; targets and weights are fixed"""
        return ScoringConfig(sensitivity=self.SCORING_SENSITIVITY)


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False


class TestingConfig(Config):
    """Testing configuration: no external services"""
    TESTING = True
    VECTOR_BACKEND = "memory"
    STORE_BACKEND = "memory"
    MATCH_TIMEOUT = 2.0


def get_config():
    """Get configuration based on environment"""
    env = os.getenv("GOLDENFACE_ENV", "development")
    if env == "production":
        return ProductionConfig()
    if env == "testing":
        return TestingConfig()
    return DevelopmentConfig()
