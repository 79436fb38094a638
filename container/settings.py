import os
from dataclasses import dataclass, field

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

DEFAULT_PROXY_URL = "http://172.16.28.8:3128"
DEFAULT_PROXY_CONFIG = "HTTP_PROXY and HTTPS_PROXY environment variables"


def _env(name, default=""):
    # empty counts as unset
    return os.environ.get(name) or default


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, read once from the environment at startup."""

    pod_name: str = "unknown-pod"
    node_name: str = "unknown-node"
    namespace: str = "unknown-namespace"
    host_interface: str = ""
    proxy_url: str = DEFAULT_PROXY_URL
    proxy_config: str = DEFAULT_PROXY_CONFIG
    port: int = 8080
    static_dir: str = field(default=os.path.join(BASE_DIR, "static"))

    @classmethod
    def from_env(cls):
        return cls(
            pod_name=_env("POD_NAME", "unknown-pod"),
            node_name=_env("NODE_NAME", "unknown-node"),
            namespace=_env("POD_NAMESPACE", "unknown-namespace"),
            host_interface=_env("HOST_INTERFACE"),
            proxy_url=_env("PROXY_URL", DEFAULT_PROXY_URL),
            proxy_config=_env("PROXY_CONFIG", DEFAULT_PROXY_CONFIG),
            port=int(_env("PORT", "8080")),
        )

    @property
    def index_path(self):
        return os.path.join(self.static_dir, "index.html")
