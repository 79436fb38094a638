from flask import Blueprint, Flask, Response, current_app, jsonify
import logging
import os

import egress
import netinfo
from settings import Settings

logger = logging.getLogger(__name__)

bp = Blueprint("demo", __name__)

PLACEHOLDERS = {
    b"POD_NAME_PLACEHOLDER": "pod_name",
    b"NODE_NAME_PLACEHOLDER": "node_name",
    b"NAMESPACE_PLACEHOLDER": "namespace",
    b"PROXY_URL_PLACEHOLDER": "proxy_url",
}


def create_app(settings=None, session=None):
    """Build the Flask app. ``settings`` and ``session`` default to the environment / a fresh pool."""
    app = Flask(__name__, static_folder=None)
    # upstream key order is kept as received
    app.json.sort_keys = False
    app.config["SETTINGS"] = settings or Settings.from_env()
    app.config["EGRESS_SESSION"] = session or egress.build_session()
    app.register_blueprint(bp)
    return app


@bp.route("/")
def index():
    """Serve static/index.html with the pod details filled in; plain 200 placeholder if it is missing."""
    settings = current_app.config["SETTINGS"]
    try:
        with open(settings.index_path, "rb") as f:
            content = f.read()
    except OSError as e:
        logger.info("Index page unavailable (%s), serving plain response", e)
        return Response("Demo application is running", status=200, mimetype="text/plain")

    # byte-level substitution, the page itself is passed through undecoded
    for token, attr in PLACEHOLDERS.items():
        content = content.replace(token, getattr(settings, attr).encode("utf-8"))
    return Response(content, content_type="text/html; charset=utf-8")


@bp.route("/api/system")
def system_info():
    settings = current_app.config["SETTINGS"]
    return jsonify({
        "podName": settings.pod_name,
        "nodeName": settings.node_name,
        "namespace": settings.namespace,
        "hostIP": netinfo.resolve_host_ip(settings.host_interface),
        "podIP": netinfo.resolve_pod_ip(),
        "currentTime": egress.current_time(),
    })


@bp.route("/api/external-ip")
def external_ip():
    return proxied(egress.EXTERNAL_IP)


@bp.route("/api/test-ipinfo")
def test_ipinfo():
    return proxied(egress.IPINFO)


@bp.route("/api/test-httpbin")
def test_httpbin():
    return proxied(egress.HTTPBIN)


def proxied(target):
    """Fetch ``target`` through the egress proxy; failures become a plain-text 500."""
    session = current_app.config["EGRESS_SESSION"]
    try:
        result = egress.fetch(session, target)
    except egress.EgressError as e:
        logger.warning("Fetch of %s failed: %s", target.url, e)
        return Response(str(e), status=500, mimetype="text/plain")
    return jsonify(result)


def log_banner(settings):
    logger.info("Starting egress-multitenant-demo server")
    logger.info("Pod: %s, Namespace: %s, Node: %s", settings.pod_name, settings.namespace, settings.node_name)
    logger.info("Proxy configuration: %s", settings.proxy_config)
    logger.info("Proxy URL: %s", settings.proxy_url)
    logger.info("Server listening on port %s", settings.port)


if __name__ == "__main__":
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings = Settings.from_env()
    log_banner(settings)
    app = create_app(settings)
    app.run(host="0.0.0.0", port=settings.port)
