"""
API routes/handlers
"""
import logging
from flask import Blueprint, request, jsonify

from goldenface.application.analysis_service import AnalysisService
from goldenface.domain.errors import InsufficientSamplesError, PersistenceError, VectorServiceError
from goldenface.domain.models import FaceShape, RatioSet

logger = logging.getLogger(__name__)

# Create blueprint
api = Blueprint('api', __name__)

# Service instance (injected)
analysis_service: AnalysisService = None
max_frames: int = 120


def init_routes(service: AnalysisService, frame_limit: int = 120):
    """Initialize routes with service dependency"""
    global analysis_service, max_frames
    analysis_service = service
    max_frames = frame_limit


def _error(message: str, status: int, **extra):
    body = {"success": False, "error": message}
    body.update(extra)
    return jsonify(body), status


def _positive_int(value, name: str, default: int) -> int:
    if value is None:
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be an integer")
    if number < 1:
        raise ValueError(f"{name} must be at least 1")
    return number


@api.route('/health', methods=['GET'])
def health():
    """Health check endpoint"""
    status = analysis_service.get_health()
    return jsonify(status.to_dict())


@api.route('/ready', methods=['GET'])
def ready():
    """Readiness check endpoint"""
    is_ready = analysis_service.is_ready()
    if is_ready:
        return jsonify({"ready": True})
    return jsonify({"ready": False}), 503


@api.route('/analyze', methods=['POST'])
def analyze():
    """Score, classify and match either stabilized ratios or raw frames"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return _error("Request body must be a JSON object", 400)

    device_id = data.get('deviceId')
    try:
        top_k = _positive_int(data.get('topK'), "topK", None)

        if 'ratios' in data:
            ratios = RatioSet.from_dict(data['ratios'])
            result = analysis_service.analyze(ratios, device_id=device_id, top_k=top_k)
        elif 'frames' in data:
            frames = data['frames']
            if not isinstance(frames, list):
                return _error("frames must be a list", 400)
            if len(frames) > max_frames:
                return _error(f"Too many frames: at most {max_frames} allowed", 400)
            result = analysis_service.analyze_frames(frames, device_id=device_id, top_k=top_k)
        else:
            return _error("Missing ratios or frames in request body", 400)

    except InsufficientSamplesError as e:
        logger.info(f"Analysis rejected: {e}")
        return _error(str(e), 422, samples=e.count, required=e.required)
    except ValueError as e:
        return _error(str(e), 400)

    return jsonify({"success": True, "data": result.to_dict()})


@api.route('/match', methods=['POST'])
def find_match():
    """Find nearest reference faces for a ratio set"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or 'ratios' not in data:
        return _error("Missing ratios in request body", 400)

    try:
        ratios = RatioSet.from_dict(data['ratios'])
        top_k = _positive_int(data.get('topK'), "topK", None)
        matches = analysis_service.match(ratios, top_k)
    except ValueError as e:
        return _error(str(e), 400)
    except VectorServiceError as e:
        logger.error(f"Match failed: {e}")
        return _error("Similarity service unavailable", 503)

    user_vector = list(ratios.values())
    if not matches:
        return jsonify({
            "success": True,
            "data": {
                "matches": [],
                "userVector": user_vector,
                "message": "No matches available. The reference set may not be seeded yet.",
            },
        })

    formatted = [m.to_dict() for m in matches]
    return jsonify({
        "success": True,
        "data": {
            "topMatch": formatted[0],
            "matches": formatted,
            "userVector": user_vector,
        },
    })


@api.route('/match/health', methods=['GET'])
def match_health():
    """Probe the similarity service"""
    status = analysis_service.match_health()
    return jsonify({"success": status["status"] != "disconnected", "data": status})


@api.route('/scans', methods=['POST'])
def create_scan():
    """Save a completed analysis"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return _error("Request body must be a JSON object", 400)

    device_id = data.get('deviceId')
    results = data.get('results')
    if not device_id or not data.get('ratios') or not isinstance(results, dict):
        return _error("Missing required fields: deviceId, ratios, results", 400)

    try:
        ratios = RatioSet.from_dict(data['ratios'])
        total_score = float(results['totalScore'])
        if not 0 <= total_score <= 100:
            raise ValueError("totalScore must be within 0-100")
        face_shape = FaceShape(results['faceShape'])
        if face_shape is FaceShape.UNKNOWN:
            raise ValueError("faceShape must be a classified shape")
    except (KeyError, TypeError, ValueError) as e:
        return _error(f"Invalid scan: {e}", 400)

    try:
        record = analysis_service.save_scan(
            device_id,
            ratios,
            total_score,
            face_shape,
            celebrity_match=results.get('celebrityMatch'),
        )
    except PersistenceError as e:
        logger.error(f"Create scan failed: {e}")
        return _error("Failed to save scan", 500)

    return jsonify({"success": True, "data": record.to_dict()}), 201


@api.route('/scans/<device_id>', methods=['GET'])
def list_scans(device_id):
    """Scans for one device, newest first"""
    try:
        limit = _positive_int(request.args.get('limit'), "limit", 10)
        page = _positive_int(request.args.get('page'), "page", 1)
    except ValueError as e:
        return _error(str(e), 400)

    try:
        records, total = analysis_service.list_scans(device_id, limit=limit, page=page)
    except PersistenceError as e:
        logger.error(f"List scans failed: {e}")
        return _error("Failed to retrieve scans", 500)

    return jsonify({
        "success": True,
        "data": [r.to_dict() for r in records],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": -(-total // limit),
        },
    })


@api.route('/scans/<scan_id>', methods=['DELETE'])
def delete_scan(scan_id):
    """Delete a scan owned by the requesting device"""
    data = request.get_json(silent=True) or {}
    device_id = data.get('deviceId') or request.headers.get('X-Device-ID')
    if not device_id:
        return _error("Missing deviceId", 400)

    try:
        deleted = analysis_service.delete_scan(scan_id, device_id)
    except PersistenceError as e:
        logger.error(f"Delete scan failed: {e}")
        return _error("Failed to delete scan", 500)

    if not deleted:
        return _error("Scan not found or unauthorized", 404)
    return jsonify({"success": True, "message": "Scan deleted successfully"})


@api.route('/stats', methods=['GET'])
def get_stats():
    """Global statistics"""
    try:
        stats = analysis_service.get_stats()
    except PersistenceError as e:
        logger.error(f"Get stats failed: {e}")
        return _error("Failed to retrieve statistics", 500)

    return jsonify({"success": True, "data": stats.to_dict()})
