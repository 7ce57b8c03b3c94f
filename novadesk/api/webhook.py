from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from telegram import Update

from novadesk.core.logger import logger

def build_webhook_router(path: str) -> APIRouter:
    """
    Telegram webhook mounted at a configurable (secret-ish) path.
    """
    router = APIRouter()

    @router.get(path)
    async def webhook_alive():
        return PlainTextResponse("OK")

    @router.post(path)
    async def telegram_webhook(request: Request):
        application = request.app.state.telegram_app
        if application is None:
            logger.warning("⚠️ Webhook hit but the Telegram application is not running")
            return JSONResponse(status_code=503, content={"ok": False})

        try:
            payload = await request.json()
            update = Update.de_json(payload, application.bot)
            await application.process_update(update)
        except Exception:
            # Answer 200 anyway: a non-2xx makes Telegram redeliver the same update
            logger.exception("❌ CRITICAL WEBHOOK ERROR")
            return {"ok": False}

        return {"ok": True}

    return router
