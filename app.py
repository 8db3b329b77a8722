from fastapi import FastAPI, HTTPException, Depends, Request
from pydantic import BaseModel
from contextlib import asynccontextmanager
from typing import Optional
import asyncio
import logging

from dotenv import load_dotenv

from auth.tokens import TokenError
from lifecycle.enrollment import ConfirmationNotSentError, InvalidEmailError
from models.recipient import RecipientRecord
from models.settings import Settings
from service_factory import ServiceFactory
from store.recipient_store import StoreError

# Load environment variables from .env file
load_dotenv()

# Configure logging to file and console
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s',
    handlers=[
        logging.FileHandler('gms.log'),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger("gms_service")


class CheckMailRequest(BaseModel):
    email: str


class CheckMailResponse(BaseModel):
    status: str
    email: str


def create_app(services: Optional[ServiceFactory] = None) -> FastAPI:
    """
    Builds the web app. Without `services`, settings are read from the
    environment on startup and a ConfigError stops the process.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        factory = services or ServiceFactory(Settings.from_env())
        await asyncio.to_thread(factory.store.create_table)
        app.state.services = factory

        scheduler = None
        scheduler_task = None
        if factory.settings.scheduler_enabled:
            scheduler = factory.build_scheduler()
            scheduler_task = asyncio.create_task(scheduler.start())
            app.state.scheduler = scheduler

        logger.info("=" * 80)
        logger.info("GOOD MORNING SUNSHINE SERVICE STARTING")
        logger.info("=" * 80)
        try:
            yield
        finally:
            if scheduler:
                scheduler.stop()
                await scheduler_task

    app = FastAPI(title="Good Morning Sunshine", lifespan=lifespan)

    def get_services(request: Request) -> ServiceFactory:
        return request.app.state.services

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.post("/sec/checkmail", response_model=CheckMailResponse)
    async def check_mail(payload: CheckMailRequest, services: ServiceFactory = Depends(get_services)):
        try:
            await services.enrollment.request_confirmation(payload.email)
        except InvalidEmailError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except ConfirmationNotSentError as e:
            logger.error(f"Confirmation mail failed: {e}")
            raise HTTPException(status_code=502, detail="Could not send the confirmation mail")
        return CheckMailResponse(status="confirmation_sent", email=payload.email.strip().lower())

    @app.get("/auth/gms", response_model=RecipientRecord)
    async def confirm(tkn: Optional[str] = None, services: ServiceFactory = Depends(get_services)):
        try:
            return await services.enrollment.confirm(tkn)
        except TokenError as e:
            logger.warning(f"Rejected confirmation token: {e}")
            raise HTTPException(status_code=401, detail="Invalid or expired link")
        except StoreError as e:
            logger.error(f"Enrollment failed: {e}")
            raise HTTPException(status_code=503, detail="Enrollment temporarily unavailable")

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8080)
