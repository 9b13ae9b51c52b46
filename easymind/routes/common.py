"""
Shared helpers for the route blueprints.
"""
import json
import logging
import queue

from flask import Response, jsonify, request, stream_with_context

from easymind.services.formatting import serialize
from easymind.store import LiveQuery

logger = logging.getLogger(__name__)

# Seconds between keep-alive comments on idle streams
KEEPALIVE_SECONDS = 15


def ok(data, status=200):
    return jsonify(serialize(data)), status


def failure(message, error, status=500):
    """Log an unexpected error and answer with the screen's generic message."""
    logger.error("%s %s", message, error)
    return jsonify({"error": message}), status


def payload():
    """JSON body, or the form fields of a multipart upload."""
    if request.is_json:
        return request.get_json(silent=True) or {}
    data = request.form.to_dict()
    for key in request.form:
        values = request.form.getlist(key)
        if len(values) > 1 or key.endswith('[]'):
            data[key.rstrip('[]')] = values
    return data


def uploaded(name):
    """(content_type, bytes) for an uploaded file field, or None."""
    file = request.files.get(name)
    if file is None or file.filename == '':
        return None
    return file.mimetype, file.read()


def page_arg():
    try:
        return max(1, int(request.args.get('page', 1)))
    except ValueError:
        return 1


def sse_event(data, event=None):
    text = f"data: {json.dumps(serialize(data))}\n\n"
    if event:
        text = f"event: {event}\n" + text
    return text


def live_stream(query_ref, build, event):
    """Server-sent events re-emitting build(rows) on every query snapshot.

    The Firestore watch thread hands snapshots over through a queue; the
    listener is unsubscribed when the client disconnects.
    """
    updates = queue.Queue()

    def on_change(rows, changes):
        updates.put(("update", build(rows)))

    def on_error(e):
        updates.put(("error", {"error": str(e)}))

    live = LiveQuery(query_ref, on_change, on_error)

    def generate():
        live.start()
        try:
            while True:
                try:
                    kind, data = updates.get(timeout=KEEPALIVE_SECONDS)
                except queue.Empty:
                    yield ": keep-alive\n\n"
                    continue
                yield sse_event(data, event if kind == "update" else "error")
        finally:
            live.stop()

    return Response(
        stream_with_context(generate()),
        mimetype='text/event-stream',
        headers={
            'Cache-Control': 'no-cache',
            'X-Accel-Buffering': 'no',
            'Connection': 'keep-alive'
        }
    )
