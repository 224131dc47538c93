from contextlib import asynccontextmanager

from fastapi import FastAPI, Header, HTTPException, Request

from clerk import __version__
from clerk.config import get_settings
from clerk.telegram_bot.bot import handle_telegram_update, initialize_bot, shutdown_bot
from clerk.telegram_bot.logging_config import bot_logger as logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the bot with the server and stop it on the way out."""
    logger.info("[STARTUP] Initializing Telegram bot...")
    await initialize_bot()
    logger.info("[STARTUP] Bot ready")
    yield
    logger.info("[SHUTDOWN] Shutting down Telegram bot...")
    await shutdown_bot()
    logger.info("[SHUTDOWN] Bot stopped")


app = FastAPI(
    title="Delphi Clerk Bot",
    description="Telegram bot for Reads and AF posts",
    version=__version__,
    lifespan=lifespan,
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    settings = get_settings()
    return {
        "status": "ok",
        "environment": settings.environment,
        "version": __version__
    }


@app.post("/telegram/webhook")
async def telegram_webhook(
    request: Request,
    x_telegram_bot_api_secret_token: str = Header(None)
):
    """
    Webhook endpoint for Telegram updates.

    Updates are queued for the bot and answered with 200 right away.
    """
    settings = get_settings()

    # Verify secret token if configured
    if settings.telegram_webhook_secret:
        if x_telegram_bot_api_secret_token != settings.telegram_webhook_secret:
            raise HTTPException(status_code=403, detail="Invalid secret token")

    update_data = await request.json()
    await handle_telegram_update(update_data)

    return {"ok": True}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
