import asyncio
import logging
import os
import sys

from aiohttp import web

from certificates import CertificateLoadError, load_certificate_bundle
from static_resolver import AssetNotFoundError, PathTraversalAttempt, StaticAssetResolver

HOST_NAME = "programastablet.ddns.net"
BIND_HOST = "0.0.0.0"
PORT = 443

WEB_ROOT = os.path.join("build", "web")
CERT_DIR = "certs"

# status for requests that arrive while build/web/index.html is missing
MISSING_INDEX_STATUS = 500

RESOLVER_KEY = web.AppKey("resolver", StaticAssetResolver)
MISSING_INDEX_STATUS_KEY = web.AppKey("missing_index_status", int)

log = logging.getLogger(__name__)


async def handler(request):
    resolver = request.app[RESOLVER_KEY]
    try:
        asset = resolver.resolve(request.raw_path)
    except PathTraversalAttempt:
        return web.Response(status=404, text="Not Found")
    except AssetNotFoundError as e:
        log.error("Entry document missing: %s", e)
        status = request.app[MISSING_INDEX_STATUS_KEY]
        return web.Response(status=status, text="Application entry document not found")

    return web.FileResponse(asset.path, headers={"Content-Type": asset.content_type})


def create_app(resolver, missing_index_status=MISSING_INDEX_STATUS):
    app = web.Application()
    app[RESOLVER_KEY] = resolver
    app[MISSING_INDEX_STATUS_KEY] = missing_index_status
    app.router.add_route("*", "/{tail:.*}", handler)
    return app


def public_url(host_name=HOST_NAME, port=PORT):
    if port == 443:
        return f"https://{host_name}"
    return f"https://{host_name}:{port}"


async def serve(app, ssl_context, host=BIND_HOST, port=PORT, url=None):
    """Run app on a TLS site until cancelled."""
    runner = web.AppRunner(app)
    await runner.setup()
    try:
        site = web.TCPSite(runner, host=host, port=port, ssl_context=ssl_context)
        await site.start()

        print(f"🌍 Secure web app ready on port {port}")
        print(f"👉 Open: {url or public_url(port=port)}")

        await asyncio.Future()  # keep server alive
    finally:
        await runner.cleanup()


def main():
    logging.basicConfig(level=logging.INFO)

    try:
        bundle = load_certificate_bundle(CERT_DIR, HOST_NAME)
    except CertificateLoadError as e:
        print(f"❌ Certificate error for the web server: {e}", file=sys.stderr)
        print(
            f"⚠️ Check that the '{CERT_DIR}' folder exists next to 'build' and holds "
            f"{HOST_NAME}-key.pem, {HOST_NAME}-crt.pem and {HOST_NAME}-chain.pem.",
            file=sys.stderr,
        )
        sys.exit(1)

    resolver = StaticAssetResolver(WEB_ROOT)
    if not resolver.entry_document_exists():
        print(f"⚠️ {resolver.index_path} not found; requests will fail until the app is built.",
              file=sys.stderr)

    app = create_app(resolver)

    try:
        asyncio.run(serve(app, bundle.ssl_context, BIND_HOST, PORT, public_url(bundle.host_name)))
    except OSError as e:
        print(f"❌ Could not listen on {BIND_HOST}:{PORT}: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nShutting down...")


if __name__ == "__main__":
    main()
