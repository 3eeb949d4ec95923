from __future__ import annotations

import json
from typing import Any

from proxy_setup.backends import SING_BOX, XRAY
from proxy_setup.models import LISTEN_HOST, InstallTarget
from proxy_setup.system import write_file


def render_xray_config(socks_port: int, http_port: int) -> dict[str, Any]:
    return {
        "log": {"loglevel": "warning"},
        "inbounds": [
            {
                "listen": LISTEN_HOST,
                "port": socks_port,
                "protocol": "socks",
                "settings": {"auth": "noauth", "udp": True},
            },
            {
                "listen": LISTEN_HOST,
                "port": http_port,
                "protocol": "http",
                "settings": {"allowTransparent": False},
            },
        ],
        "outbounds": [{"protocol": "freedom", "settings": {}}],
    }


def render_sing_box_config(socks_port: int, http_port: int) -> dict[str, Any]:
    return {
        "log": {"level": "warn"},
        "inbounds": [
            {"type": "socks", "tag": "socks-in", "listen": LISTEN_HOST, "listen_port": socks_port},
            {"type": "http", "tag": "http-in", "listen": LISTEN_HOST, "listen_port": http_port},
        ],
        "outbounds": [{"type": "direct", "tag": "direct"}],
        "route": {"rules": [{"inbound": ["socks-in", "http-in"], "outbound": "direct"}]},
    }


RENDERERS = {
    XRAY.name: render_xray_config,
    SING_BOX.name: render_sing_box_config,
}


def render_config(target: InstallTarget) -> dict[str, Any]:
    return RENDERERS[target.backend.name](target.socks_port, target.http_port)


def write_config(target: InstallTarget) -> str:
    content = json.dumps(render_config(target), indent=4) + "\n"
    write_file(target.config_path, content)
    return content
