# routes/ipfs.py
import re
import requests
from flask import Blueprint, Response, jsonify, current_app, stream_with_context

ipfs_bp = Blueprint("ipfs", __name__, url_prefix='/api/ipfs')

# CIDv0 (Qm...) and CIDv1 base32/base58 strings are alphanumeric.
CONTENT_HASH_RE = re.compile(r'^[A-Za-z0-9]{10,128}$')


@ipfs_bp.route("/download/<string:content_hash>", methods=["GET"])
def download(content_hash):
    """Streams a certificate document from the IPFS gateway as an attachment."""
    if not CONTENT_HASH_RE.match(content_hash):
        return jsonify(message="Invalid content hash."), 400

    gateway = current_app.config['IPFS_GATEWAY_URL'].rstrip('/')
    try:
        upstream = requests.get(
            f"{gateway}/{content_hash}",
            stream=True,
            timeout=current_app.config['IPFS_GATEWAY_TIMEOUT'],
        )
    except requests.exceptions.RequestException as e:
        current_app.logger.warning(f"Could not reach the IPFS gateway for {content_hash}: {e}")
        return jsonify(message="Could not reach the IPFS gateway."), 502

    if upstream.status_code == 404:
        upstream.close()
        return jsonify(message="Certificate document not found."), 404
    if upstream.status_code != 200:
        upstream.close()
        current_app.logger.warning(f"IPFS gateway returned {upstream.status_code} for {content_hash}")
        return jsonify(message="The IPFS gateway could not serve this document."), 502

    content_type = upstream.headers.get('Content-Type', 'application/octet-stream')
    headers = {'Content-Disposition': f'attachment; filename="certificate-{content_hash}"'}
    return Response(
        stream_with_context(upstream.iter_content(chunk_size=8192)),
        status=200,
        content_type=content_type,
        headers=headers,
    )
