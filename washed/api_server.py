#!/usr/bin/env python3
"""
I'M WASHED API Server
Upload an image, get it back darkened with the caption, then export it
as a download, a clipboard payload or a share payload.
"""

import os
import logging
from io import BytesIO
from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from flask import Flask, Response, request, jsonify, send_file, url_for
from flask_cors import CORS
from werkzeug.utils import secure_filename

# --- Centralized Logging Configuration ---
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
    datefmt='%H:%M:%S'
)

from .errors import DecodeError, ProcessingError
from .services.export_service import ExportService
from .services.platform_service import PlatformService
from .services.session_service import SessionService

app = Flask(__name__)
CORS(app)  # Enable CORS for frontend communication

# Configuration
MAX_CONTENT_LENGTH = int(os.getenv("MAX_UPLOAD_SIZE_MB", "25")) * 1024 * 1024
app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH

# Initialize services
session_service = SessionService()
platform_service = PlatformService()
export_service = ExportService()

logger = logging.getLogger(__name__)


def _result_urls(session_id: str) -> dict:
    return {
        'download_url': url_for('download_result', session_id=session_id),
        'view_url': url_for('view_result', session_id=session_id),
        'clipboard_url': url_for('clipboard_result', session_id=session_id),
        'share_url': url_for('share_result', session_id=session_id),
    }


def _finished_session(session_id: str):
    """Return (session, None) or (None, error response) for result endpoints."""
    session = session_service.get(session_id)
    if session is None:
        return None, (jsonify({'success': False, 'message': 'Invalid session'}), 404)
    if session.output is None:
        return None, (jsonify({'success': False, 'message': 'No processed image yet'}), 404)
    return session, None


@app.route('/api/wash', methods=['POST'])
def wash():
    """Composite the uploaded image and keep the result on the session."""
    if 'image' not in request.files:
        return jsonify({'success': False, 'message': 'No image provided'}), 400

    session = session_service.get_or_create(
        request.form.get('session_id'),
        user_agent=request.headers.get('User-Agent'),
    )

    file = request.files['image']
    filename = secure_filename(file.filename or '') or 'upload'
    data = file.read()

    try:
        output, accepted = session_service.wash(session, data, filename)
    except DecodeError as e:
        logger.warning(f"Rejected upload {filename} for session {session.session_id}: {e}")
        return jsonify({
            'success': False,
            'session_id': session.session_id,
            'message': e.user_message,
        }), 400
    except ProcessingError as e:
        logger.error(f"Processing error for session {session.session_id}: {e}")
        return jsonify({
            'success': False,
            'session_id': session.session_id,
            'message': e.user_message,
        }), 500

    if not accepted:
        return jsonify({
            'success': False,
            'session_id': session.session_id,
            'message': 'Superseded by a newer upload',
        }), 409

    return jsonify({
        'success': True,
        'session_id': session.session_id,
        'width': output.width,
        'height': output.height,
        'filename': output.filename,
        'image': output.to_data_url(),
        'capabilities': session.capabilities.to_dict(),
        **_result_urls(session.session_id),
    })


@app.route('/api/result/<session_id>/download')
def download_result(session_id):
    """Serve the result as an `im-washed.png` attachment."""
    session, error = _finished_session(session_id)
    if error:
        return error
    output = session.output
    return Response(output.data, headers=export_service.download_headers(output))


@app.route('/api/result/<session_id>/view')
def view_result(session_id):
    """Serve the result inline (open-in-new-view fallback)."""
    session, error = _finished_session(session_id)
    if error:
        return error
    output = session.output
    return send_file(BytesIO(output.data), mimetype=output.mime_type)


@app.route('/api/result/<session_id>/clipboard')
def clipboard_result(session_id):
    session, error = _finished_session(session_id)
    if error:
        return error
    payload = export_service.clipboard_payload(
        session.output, session.capabilities, url_for('view_result', session_id=session_id))
    return jsonify({'success': True, 'session_id': session_id, **payload})


@app.route('/api/result/<session_id>/share')
def share_result(session_id):
    session, error = _finished_session(session_id)
    if error:
        return error
    payload = export_service.share_payload(
        session.output, session.capabilities, url_for('download_result', session_id=session_id))
    return jsonify({'success': True, 'session_id': session_id, **payload})


@app.route('/api/capabilities', methods=['GET'])
def capabilities():
    """Capability query for the caller's User-Agent."""
    caps = platform_service.detect(request.headers.get('User-Agent'))
    return jsonify(caps.to_dict())


@app.route('/api/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return jsonify({
        'status': 'healthy',
        'message': "I'M WASHED API is running",
        'active_sessions': len(session_service)
    })


@app.route('/api/clear-session', methods=['POST'])
def clear_session():
    """Clear a session and free memory."""
    session_id = (request.get_json(silent=True) or {}).get('session_id')
    if session_id and session_service.clear(session_id):
        return jsonify({'success': True, 'message': 'Session cleared'})
    return jsonify({'success': False, 'message': 'Session not found'}), 404


@app.errorhandler(413)
def too_large(e):
    """Handle file too large error."""
    return jsonify({
        'success': False,
        'message': f'File too large. Maximum size is {MAX_CONTENT_LENGTH // (1024 * 1024)}MB.'
    }), 413


@app.errorhandler(400)
def bad_request(e):
    """Handle bad request error."""
    return jsonify({'success': False, 'message': 'Bad request'}), 400


@app.errorhandler(500)
def internal_error(e):
    """Handle internal server error."""
    logger.error(f"Internal server error: {e}")
    return jsonify({'success': False, 'message': 'Internal server error'}), 500


def main():
    host = os.getenv("API_HOST", "127.0.0.1")
    port = int(os.getenv("API_PORT", "5000"))
    logger.info(f"Starting I'M WASHED API on {host}:{port}")
    logger.info(f"Max upload size: {MAX_CONTENT_LENGTH // (1024 * 1024)}MB")
    app.run(host=host, port=port, debug=False)


if __name__ == '__main__':
    main()
