"""Coach Engine HTTP handler.

Every student message enters through /coach/message. The safeguarding
scan runs before any coaching logic; a serious concern returns the
escalation reply and notifies the safeguarding team.

Review endpoints let safeguarding staff list flags, mark them reviewed
and set a student's status (the only way back to clear).
"""
import logging
import os
from datetime import datetime, timezone

from flask import Flask, jsonify, request

from humanos.shared.database import NotFoundError, get_connection_manager
from humanos.shared.models import ContextValidationError, SafeguardingStatus, StudentContext
from humanos.shared.utils import configure_pii_salt, hash_pii
from humanos.services.age_service import AgeAdjuster
from humanos.services.barrier_service import get_barrier_catalog
from humanos.services.personalization_service import (
    InterestRepository,
    PersonalizationConfig,
    RewardCodeIssuer,
)
from humanos.services.safeguarding_service import (
    SafeguardingAlertPublisher,
    SafeguardingConfig,
    SafeguardingRepository,
    SafeguardingReviewService,
)
from .config import APOLOGETIC_FALLBACK, CoachConfig
from .orchestrator import build_orchestrator

logger = logging.getLogger(__name__)

# Initialize Flask app
app = Flask(__name__)

# Configure PII salt from environment
pii_salt = os.getenv("PII_HASH_SALT", "default_dev_salt_change_in_production_32chars")
configure_pii_salt(pii_salt)

config = CoachConfig.from_env()
safeguarding_config = SafeguardingConfig.from_env()
personalization_config = PersonalizationConfig.from_env()

# PostgreSQL when DB_HOST is set, in-memory otherwise
connection_manager = get_connection_manager() if os.getenv("DB_HOST") else None

safeguarding_repository = SafeguardingRepository(connection_manager)
interest_store = InterestRepository(connection_manager, config=personalization_config)
alert_publisher = SafeguardingAlertPublisher(
    stream_name=safeguarding_config.stream_name,
    enabled=safeguarding_config.alert_publishing_enabled,
    region=safeguarding_config.aws_region,
)

# Catalog errors are fatal at startup
catalog = get_barrier_catalog()

orchestrator = build_orchestrator(
    safeguarding_repository=safeguarding_repository,
    interest_store=interest_store,
    publisher=alert_publisher,
    catalog=catalog,
    config=config,
    safeguarding_config=safeguarding_config,
)
review_service = SafeguardingReviewService(safeguarding_repository)
reward_issuer = RewardCodeIssuer(config=personalization_config)
age_adjuster = AgeAdjuster()


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@app.route("/health", methods=["GET"])
def health():
    """Health check endpoint for ECS/ALB."""
    return jsonify({
        "status": "healthy",
        "service": "coach-engine",
        "pattern_version": safeguarding_config.pattern_version,
        "catalog_version": catalog.version,
    }), 200


@app.route("/ready", methods=["GET"])
def ready():
    """Readiness check - catalog loaded and database reachable.

    Returns:
        200 if ready, 503 if not
    """
    if orchestrator is None or not len(catalog):
        return jsonify({"status": "not_ready", "reason": "pipeline_not_initialized"}), 503

    if connection_manager is not None:
        db = connection_manager.health_check()
        if db.get("status") == "error":
            return jsonify({"status": "not_ready", "reason": "database_unavailable"}), 503

    return jsonify({"status": "ready"}), 200


@app.route("/coach/message", methods=["POST"])
def coach_message():
    """Process one student message.

    Request Body:
        {
            "student_id": "student_789",
            "message": "Student message text",
            "context": {"age": 12, "brain_state": {...}, ...}
        }

    Response:
        {
            "message": "Reply text",
            "intervention": {...} | null,
            "detected_barriers": [...],
            "safeguarding_alert": true | false,
            "reward_earned": true | false,
            "reasoning": [...],
            "timestamp": "2026-10-01T12:00:00+00:00",
            "reward": {...} (only if reward_earned),
            "support_message": "..." (only on a safeguarding escalation)
        }

    Error Handling:
        Invalid requests return 400. Any other error returns 200 with a
        fixed apologetic reply so the student is never shown a failure.
    """
    data = request.get_json(silent=True)
    if not data:
        logger.warning("COACH_REQUEST_INVALID", extra={"reason": "empty_body"})
        return jsonify({"error": "Request body required"}), 400

    student_id = data.get("student_id")
    message = data.get("message")
    if not student_id or not isinstance(student_id, str):
        logger.warning("COACH_REQUEST_INVALID", extra={"reason": "missing_student_id"})
        return jsonify({"error": "Missing required field: student_id"}), 400
    if not isinstance(message, str):
        logger.warning("COACH_REQUEST_INVALID", extra={"reason": "missing_message"})
        return jsonify({"error": "Missing required field: message"}), 400

    try:
        context = StudentContext.from_dict(data.get("context"))
    except ContextValidationError as e:
        logger.warning("COACH_REQUEST_INVALID", extra={"reason": "invalid_context", "error": str(e)})
        return jsonify({"error": f"Invalid context: {e}"}), 400

    student_id_hash = hash_pii(student_id)
    logger.info(
        "COACH_MESSAGE_RECEIVED",
        extra={"student_id_hash": student_id_hash, "message_length": len(message)}
    )

    try:
        result = orchestrator.process_message(student_id, message, context)

        body = result.to_dict()
        body["timestamp"] = _timestamp()
        if result.reward_earned:
            body["reward"] = reward_issuer.issue("task_engagement").to_dict()
        if result.escalated:
            body["support_message"] = age_adjuster.safeguarding_response(context.age)

        return jsonify(body), 200

    except Exception as e:
        logger.error(
            "COACH_MESSAGE_ERROR",
            extra={
                "student_id_hash": student_id_hash,
                "error": str(e),
                "error_type": type(e).__name__,
            }
        )
        return jsonify({
            "message": APOLOGETIC_FALLBACK,
            "intervention": None,
            "detected_barriers": [],
            "safeguarding_alert": False,
            "reward_earned": False,
            "reasoning": [],
            "timestamp": _timestamp(),
        }), 200


@app.route("/rewards/validate", methods=["POST"])
def validate_reward():
    """Check whether an unlock code is still valid.

    Request Body:
        {"code": "GAME-1790000000000-AB12CD"}
    """
    data = request.get_json(silent=True) or {}
    code = data.get("code")
    if not code or not isinstance(code, str):
        return jsonify({"error": "Missing required field: code"}), 400

    return jsonify({"valid": reward_issuer.validate(code)}), 200


@app.route("/safeguarding/<student_id>/status", methods=["GET"])
def get_safeguarding_status(student_id: str):
    """Current safeguarding status for a student."""
    try:
        status = review_service.get_status(student_id)
    except Exception as e:
        logger.error("SAFEGUARDING_STATUS_READ_FAILED", extra={"error": str(e)})
        return jsonify({"error": "Failed to read status"}), 500

    return jsonify({"status": status.value, "tier": status.tier}), 200


@app.route("/safeguarding/<student_id>/flags", methods=["GET"])
def list_trauma_flags(student_id: str):
    """List a student's trauma flags.

    Query Parameters:
        pending: "true" to list only flags awaiting review
    """
    pending_only = request.args.get("pending", "false").lower() == "true"
    try:
        flags = review_service.list_flags(student_id, pending_only=pending_only)
    except Exception as e:
        logger.error("TRAUMA_FLAG_LIST_FAILED", extra={"error": str(e)})
        return jsonify({"error": "Failed to list flags"}), 500

    return jsonify({
        "flags": [flag.to_dict(include_content=True) for flag in flags],
        "count": len(flags),
    }), 200


@app.route("/safeguarding/<student_id>/flags/<flag_id>/review", methods=["POST"])
def review_trauma_flag(student_id: str, flag_id: str):
    """Mark a flag as reviewed.

    Request Body:
        {"reviewed_by": "counselor_123", "outcome": "Spoke with student"}
    """
    data = request.get_json(silent=True) or {}
    try:
        flag = review_service.mark_reviewed(
            student_id,
            flag_id,
            reviewed_by=data.get("reviewed_by") or "",
            outcome=data.get("outcome"),
        )
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError:
        return jsonify({"error": "Flag not found"}), 404
    except Exception as e:
        logger.error("TRAUMA_FLAG_REVIEW_FAILED", extra={"flag_id": flag_id, "error": str(e)})
        return jsonify({"error": "Failed to record review"}), 500

    return jsonify(flag.to_dict()), 200


@app.route("/safeguarding/<student_id>/status", methods=["POST"])
def set_safeguarding_status(student_id: str):
    """Set a student's status after human review.

    Request Body:
        {"status": "clear", "changed_by": "counselor_123"}
    """
    data = request.get_json(silent=True) or {}
    try:
        status = SafeguardingStatus(data.get("status"))
    except ValueError:
        return jsonify({"error": "Invalid status"}), 400

    try:
        updated = review_service.set_status(student_id, status, data.get("changed_by") or "")
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.error("SAFEGUARDING_STATUS_SET_FAILED", extra={"error": str(e)})
        return jsonify({"error": "Failed to set status"}), 500

    return jsonify({"status": updated.value, "tier": updated.tier}), 200


if __name__ == "__main__":
    # Configure logging
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Run development server
    app.run(host="0.0.0.0", port=config.port, debug=False)
