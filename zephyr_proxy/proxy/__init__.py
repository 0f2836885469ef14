from zephyr_proxy.proxy.handler import ForwardResult, ProxyHandler
from zephyr_proxy.proxy.routes import PROXY_ROUTES, build_router

__all__ = ["ForwardResult", "ProxyHandler", "PROXY_ROUTES", "build_router"]
