from fastapi import APIRouter

from zephyr_proxy.proxy.handler import ProxyHandler

# Prefix matches, most specific first: search must win over the general
# test-run prefix.
PROXY_ROUTES = (
    ("testplan", "/rest/atm/1.0/testplan/"),
    ("testrun_search", "/rest/atm/1.0/testrun/search"),
    ("testrun", "/rest/atm/1.0/testrun"),
)


def build_router(handler: ProxyHandler) -> APIRouter:
    """
    Bind every registered prefix to the same handler instance.

    The routes are plain Starlette routes without a method list, so every
    method (WebDAV and TRACE included) reaches the handler instead of being
    answered with 405.
    """
    router = APIRouter()
    for name, prefix in PROXY_ROUTES:
        router.add_route(
            prefix + "{subpath:path}",
            handler.handle,
            methods=None,
            name=name,
            include_in_schema=False,
        )
    return router
