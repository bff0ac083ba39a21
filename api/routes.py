"""
API routes for the Contact Capture API.

Flask REST API endpoints for capturing, listing and exporting contacts.
"""

import io
import logging
from typing import Dict, Optional, Tuple

from flask import Blueprint, request, jsonify, send_file, current_app

from capture.export import ExportError
from capture.ocr import TextRecognizer
from capture.pipeline import CapturePipeline
from capture.records import (
    LOB_OPTIONS,
    PARTNER_OPTIONS,
    REGION_OPTIONS,
    RELEVANCY_OPTIONS,
    TIER_OPTIONS,
)
from capture.store import RecordStore
from config import Config

logger = logging.getLogger(__name__)

# Create Blueprint
api_bp = Blueprint("api", __name__, url_prefix="/api")

PIPELINE_KEY = "capture_pipeline"


def get_pipeline() -> CapturePipeline:
    """Get or create the pipeline for the current app.

    Returns:
        CapturePipeline instance
    """
    pipeline = current_app.extensions.get(PIPELINE_KEY)

    if pipeline is None:
        cfg = current_app.config
        config_class = current_app.extensions.get("capture_config", Config)
        pipeline = CapturePipeline(
            recognizer=TextRecognizer(
                languages=cfg["OCR_LANGUAGES"],
                gpu=cfg["OCR_GPU"],
                model_dir=cfg["OCR_MODEL_DIR"],
                max_dimension=cfg["OCR_MAX_DIMENSION"],
                enhance=cfg["OCR_ENHANCE_IMAGES"]
            ),
            store=RecordStore(cfg["STORE_PATH"]),
            settings=config_class.extraction_settings()
        )
        current_app.extensions[PIPELINE_KEY] = pipeline
        logger.info(f"Pipeline initialized with store: {cfg['STORE_PATH'] or 'memory'}")

    return pipeline


def _uploaded_image() -> Tuple[Optional[bytes], Optional[Tuple]]:
    """Read the uploaded ``file`` field or build an error response."""
    if "file" not in request.files:
        return None, (jsonify({
            "success": False,
            "error": "No file provided. Use 'file' field in form-data."
        }), 400)

    file = request.files["file"]

    if file.filename == "":
        return None, (jsonify({
            "success": False,
            "error": "No file selected"
        }), 400)

    if not Config.is_allowed_file(file.filename):
        return None, (jsonify({
            "success": False,
            "error": f"File type not allowed. Allowed: {', '.join(sorted(Config.ALLOWED_EXTENSIONS))}"
        }), 400)

    return file.read(), None


def _record_filters() -> Dict:
    args = request.args
    return {
        "relevancy": args.get("relevancy") or None,
        "company": args.get("company") or None,
        "date_from": args.get("date_from") or None,
        "date_to": args.get("date_to") or None,
        "search": args.get("search") or None,
    }


@api_bp.route("/health", methods=["GET"])
def health_check():
    """Health check endpoint.

    Returns:
        JSON with health status
    """
    return jsonify({
        "success": True,
        "status": "healthy",
        "message": "Contact Capture API is running",
        "version": "1.0.0"
    }), 200


@api_bp.route("/status", methods=["GET"])
def get_status():
    """Get API and pipeline status."""
    try:
        pipeline = get_pipeline()
        return jsonify({
            "success": True,
            "data": {
                "api_status": "running",
                "pipeline_status": pipeline.get_status()
            }
        }), 200

    except Exception as e:
        logger.error(f"Error getting status: {str(e)}")
        return jsonify({
            "success": False,
            "error": str(e)
        }), 500


@api_bp.route("/options", methods=["GET"])
def get_options():
    """Choices offered by the capture form."""
    return jsonify({
        "success": True,
        "data": {
            "relevancy": RELEVANCY_OPTIONS,
            "partner_details": PARTNER_OPTIONS,
            "target_regions": REGION_OPTIONS,
            "tier": TIER_OPTIONS,
            "lob": LOB_OPTIONS
        }
    }), 200


@api_bp.route("/ocr", methods=["POST"])
def process_card():
    """Recognize a business card photo and return prefilled contact fields.

    Expects:
        - multipart/form-data with 'file' field

    Returns:
        JSON with the extracted fields and the recognized text
    """
    image_bytes, error = _uploaded_image()
    if error:
        return error

    try:
        result = get_pipeline().process_card_image(image_bytes)
        return jsonify(result), 200 if result["success"] else 422

    except Exception as e:
        logger.error(f"Error processing card: {str(e)}")
        return jsonify({
            "success": False,
            "error": str(e)
        }), 500


@api_bp.route("/qr", methods=["POST"])
def process_qr():
    """Decode a QR code image and look for a WhatsApp number.

    Finding no phone number is a successful scan; only an unreadable image
    or an image without a QR code is reported as a failure.
    """
    image_bytes, error = _uploaded_image()
    if error:
        return error

    try:
        result = get_pipeline().process_qr_image(image_bytes)
        return jsonify(result), 200 if result["success"] else 422

    except Exception as e:
        logger.error(f"Error scanning QR code: {str(e)}")
        return jsonify({
            "success": False,
            "error": str(e)
        }), 500


@api_bp.route("/parse-text", methods=["POST"])
def parse_text():
    """Parse raw text (skip OCR).

    Expects:
        - JSON body with 'text' field
    """
    data = request.get_json(silent=True)

    if not data or "text" not in data:
        return jsonify({
            "success": False,
            "error": "No text provided. Send JSON with 'text' field."
        }), 400

    result = get_pipeline().process_text(data["text"])
    return jsonify({"success": True, "data": result}), 200


@api_bp.route("/parse-payload", methods=["POST"])
def parse_payload():
    """Extract a WhatsApp number from an already-decoded QR payload."""
    data = request.get_json(silent=True)

    if not data or "payload" not in data:
        return jsonify({
            "success": False,
            "error": "No payload provided. Send JSON with 'payload' field."
        }), 400

    result = get_pipeline().process_payload(data["payload"])
    return jsonify({"success": True, "data": result}), 200


@api_bp.route("/submissions", methods=["GET"])
def list_submissions():
    """List stored contacts, optionally filtered."""
    try:
        records = get_pipeline().list_records(**_record_filters())
    except ValueError as e:
        return jsonify({"success": False, "error": str(e)}), 400

    return jsonify({
        "success": True,
        "data": {
            "count": len(records),
            "submissions": [r.to_dict() for r in records]
        }
    }), 200


@api_bp.route("/submissions/stats", methods=["GET"])
def submission_stats():
    """Dashboard counters: total, unique companies, this week, high relevancy."""
    return jsonify({"success": True, "data": get_pipeline().get_stats()}), 200


@api_bp.route("/submissions", methods=["POST"])
def create_submission():
    """Store a contact.

    Expects:
        - JSON body with contact fields, plus an optional 'prefill' object
          holding extraction results the form fields are merged over
    """
    data = request.get_json(silent=True)

    if not data or not isinstance(data, dict):
        return jsonify({
            "success": False,
            "error": "No data provided. Send JSON with contact fields."
        }), 400

    form = dict(data)
    prefill = form.pop("prefill", None) or {}

    try:
        record = get_pipeline().submit(form, prefill=prefill)
    except (TypeError, ValueError) as e:
        return jsonify({"success": False, "error": str(e)}), 400

    return jsonify({"success": True, "data": record.to_dict()}), 201


@api_bp.route("/submissions", methods=["DELETE"])
def clear_submissions():
    """Remove every stored contact."""
    removed = get_pipeline().clear_records()
    return jsonify({"success": True, "data": {"removed": removed}}), 200


@api_bp.route("/export/<fmt>", methods=["GET"])
def export_submissions(fmt: str):
    """Download stored contacts as CSV or XLSX.

    Args:
        fmt: 'csv' or 'xlsx'

    Query params:
        relevancy, company, search, date_from, date_to (ISO dates)
    """
    if fmt not in ("csv", "xlsx"):
        return jsonify({
            "success": False,
            "error": "Only csv and xlsx exports are supported"
        }), 400

    try:
        content, filename, mimetype = get_pipeline().export(fmt, **_record_filters())
    except ExportError as e:
        return jsonify({"success": False, "error": str(e)}), 404
    except ValueError as e:
        return jsonify({"success": False, "error": str(e)}), 400

    return send_file(
        io.BytesIO(content),
        mimetype=mimetype,
        as_attachment=True,
        download_name=filename
    )


# Error handlers
@api_bp.errorhandler(400)
def bad_request(error):
    """Handle 400 errors."""
    return jsonify({
        "success": False,
        "error": "Bad request"
    }), 400


@api_bp.errorhandler(404)
def not_found(error):
    """Handle 404 errors."""
    return jsonify({
        "success": False,
        "error": "Resource not found"
    }), 404


@api_bp.errorhandler(500)
def internal_error(error):
    """Handle 500 errors."""
    return jsonify({
        "success": False,
        "error": "Internal server error"
    }), 500
