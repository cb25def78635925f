import argparse
import asyncio
from quicknotes.client.credential_store import CredentialStore
from quicknotes.client.gateway_client import GatewayClient
from quicknotes.client.shell import NotesShell, run as shell_run
from quicknotes.config import settings
from quicknotes.gateway.server import create_app
from quicknotes.utils.logger import get_logger

logger = get_logger(__name__)


def main():
    """メインエントリーポイント"""
    ap = argparse.ArgumentParser(description="Quick Notes for GitHub issues")
    ap.add_argument("--serve", action="store_true", help="run the GitHub gateway server")
    ap.add_argument("--host", default=settings.GATEWAY_HOST)
    ap.add_argument("--port", type=int, default=settings.GATEWAY_PORT)
    ap.add_argument("--gateway-url", default=settings.GATEWAY_URL, help="gateway used by the notes shell")
    ap.add_argument("--store", default=settings.CREDENTIAL_STORE_FILE, help="credential store file")
    args = ap.parse_args()

    if args.serve:
        logger.info(
            f"Starting Quick Notes gateway on {args.host}:{args.port} "
            f"(default repository {settings.GITHUB_REPO_OWNER}/{settings.GITHUB_REPO_NAME})"
        )
        app = create_app()
        app.run(host=args.host, port=args.port, debug=False, threaded=True)
        return

    shell = NotesShell(CredentialStore(args.store), GatewayClient(args.gateway_url))
    try:
        asyncio.run(shell_run(shell))
    except KeyboardInterrupt:
        logger.info("Application stopped")


if __name__ == "__main__":
    main()
