"""FastAPI application exposing the Messenger webhook."""

from __future__ import annotations

import json
import logging
import os

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from src.config import RelayConfig
from src.llm.reply import ReplyGenerator
from src.webhook.messenger import MessengerWebhook
from src.webhook.sender import MessengerSender

logger = logging.getLogger(__name__)

EVENT_RECEIVED = "EVENT_RECEIVED"


def create_app_from_env() -> FastAPI:
    """Factory for uvicorn --factory: reads config from environment variables.

    Raises ConfigurationError before any route exists when a required secret
    is missing.
    """
    return create_app(RelayConfig.from_env())


def create_app(
    config: RelayConfig,
    generator: ReplyGenerator | None = None,
    sender: MessengerSender | None = None,
) -> FastAPI:
    """Create the relay app around an already validated configuration."""
    app = FastAPI(docs_url=None, redoc_url=None)
    webhook = MessengerWebhook(
        config,
        generator or ReplyGenerator(config),
        sender or MessengerSender(config),
    )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/webhook")
    async def verify(request: Request) -> Response:
        result = webhook.handle_verification(dict(request.query_params))
        return PlainTextResponse(result.content, status_code=result.status_code)

    @app.post("/webhook")
    async def receive(request: Request) -> Response:
        try:
            body = await request.body()
            if not webhook.verify_signature(dict(request.headers), body):
                return JSONResponse(
                    {"error": "Invalid webhook signature"}, status_code=401,
                )
            try:
                payload = json.loads(body)
            except ValueError:
                payload = None

            if not webhook.is_page_event(payload):
                return Response(status_code=404)

            # Outcomes are logged inside process(); the ack never depends on them.
            await webhook.process(payload)
        except Exception:
            logger.exception("Webhook handling error")
            return PlainTextResponse("Internal Server Error", status_code=500)

        return PlainTextResponse(EVENT_RECEIVED, status_code=200)

    return app


def main() -> None:
    """Run the relay with uvicorn on $PORT (default 3000)."""
    import uvicorn

    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    port = int(os.environ.get("PORT", "3000"))
    app = create_app_from_env()
    logger.info("Webhook endpoint: http://localhost:%d/webhook", port)
    uvicorn.run(app, host=os.environ.get("HOST", "0.0.0.0"), port=port)


if __name__ == "__main__":
    main()
