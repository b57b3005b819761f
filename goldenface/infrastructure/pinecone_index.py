"""
Pinecone vector index client (REST data plane)
"""
import logging
from typing import List, Optional, Sequence

import requests

from goldenface.domain.errors import VectorServiceError
from goldenface.domain.interfaces import RawMatch, VectorIndexInterface
from goldenface.domain.models import ReferenceVector

logger = logging.getLogger(__name__)


class PineconeVectorIndex(VectorIndexInterface):
    """Nearest-neighbour queries against a Pinecone index host"""

    def __init__(
        self,
        host: str,
        api_key: str,
        namespace: Optional[str] = None,
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
    ):
        self.host = host.rstrip("/") if host else ""
        if self.host and not self.host.startswith(("http://", "https://")):
            self.host = f"https://{self.host}"
        self.api_key = api_key
        self.namespace = namespace
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            'Api-Key': api_key or '',
            'Content-Type': 'application/json',
            'User-Agent': 'GoldenFace/1.0',
        })

    @property
    def name(self) -> str:
        return "pinecone"

    def is_ready(self) -> bool:
        return bool(self.host and self.api_key)

    def _post(self, path: str, payload: dict) -> dict:
        if not self.is_ready():
            raise VectorServiceError("Pinecone not configured")

        if self.namespace:
            payload = {**payload, "namespace": self.namespace}

        try:
            response = self.session.post(
                f"{self.host}{path}",
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()

        except requests.Timeout as e:
            raise VectorServiceError(f"Pinecone request timed out: {e}") from e
        except requests.HTTPError as e:
            body = e.response.text[:200] if e.response is not None else ""
            raise VectorServiceError(f"Pinecone HTTP error: {e} {body}") from e
        except requests.RequestException as e:
            raise VectorServiceError(f"Pinecone unreachable: {e}") from e
        except ValueError as e:
            raise VectorServiceError(f"Invalid Pinecone response: {e}") from e

    def query(self, vector: Sequence[float], top_k: int) -> List[RawMatch]:
        """Query for the nearest references, best first"""
        data = self._post("/query", {
            "vector": list(vector),
            "topK": top_k,
            "includeMetadata": True,
        })

        matches = data.get("matches") or []
        logger.debug(f"Pinecone returned {len(matches)} matches")
        return [
            (match["id"], float(match.get("score", 0.0)), match.get("metadata") or {})
            for match in matches
        ]

    def upsert(self, references: Sequence[ReferenceVector]) -> int:
        """Batch upsert of reference vectors"""
        if not references:
            return 0

        data = self._post("/vectors/upsert", {
            "vectors": [ref.to_dict() for ref in references],
        })
        count = int(data.get("upsertedCount", len(references)))
        logger.info(f"Upserted {count} vectors to Pinecone")
        return count
