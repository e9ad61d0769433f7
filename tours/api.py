import logging
from decimal import Decimal

from fastapi import FastAPI, Header, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .exceptions import TourServiceError
from .models import (
    CheckIn, CheckInRequest, CreateTourRequest, EngineConfig,
    ParticipantBalance, SetVoteThresholdRequest, Tour, UpdateTourRequest,
)
from .service import TourService

logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Community-verified tours with proof-of-presence check-in rewards",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

tour_service = TourService()


@app.exception_handler(TourServiceError)
async def tour_service_error_handler(request: Request, exc: TourServiceError):
    logger.warning("%s %s rejected: %s: %s", request.method, request.url.path, type(exc).__name__, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


@app.get("/health", tags=["System"])
def health_check():
    return {"status": "healthy", "service": "tour-checkin"}


@app.post("/tours", response_model=Tour, status_code=status.HTTP_201_CREATED, tags=["Tours"])
def create_tour(request: CreateTourRequest, x_participant_id: str = Header(...)) -> Tour:
    return tour_service.create_tour(x_participant_id, request.image_ref, request.location)


@app.get("/tours/{tour_id}", response_model=Tour, tags=["Tours"])
def get_tour(tour_id: int) -> Tour:
    return tour_service.get_tour(tour_id)


@app.put("/tours/{tour_id}", response_model=Tour, tags=["Tours"])
def update_tour(tour_id: int, request: UpdateTourRequest, x_participant_id: str = Header(...)) -> Tour:
    return tour_service.update_tour(tour_id, x_participant_id, request.image_ref, request.location)


@app.post("/tours/{tour_id}/deactivate", response_model=Tour, tags=["Tours"])
def deactivate_tour(tour_id: int, x_participant_id: str = Header(...)) -> Tour:
    return tour_service.deactivate_tour(tour_id, x_participant_id)


@app.post("/tours/{tour_id}/upvote", response_model=Tour, tags=["Votes"])
def upvote_tour(
    tour_id: int,
    x_participant_id: str = Header(...),
    x_participant_stake: Decimal = Header(Decimal("0")),
) -> Tour:
    return tour_service.upvote(tour_id, x_participant_id, x_participant_stake)


@app.post("/tours/{tour_id}/check-ins", response_model=CheckIn,
          status_code=status.HTTP_201_CREATED, tags=["Check-ins"])
def check_in(tour_id: int, request: CheckInRequest, x_participant_id: str = Header(...)) -> CheckIn:
    return tour_service.check_in(tour_id, x_participant_id, request.image_ref, request.location)


@app.get("/tours/{tour_id}/check-ins", response_model=list[CheckIn], tags=["Check-ins"])
def list_check_ins(tour_id: int) -> list[CheckIn]:
    return tour_service.list_check_ins(tour_id)


@app.get("/participants/{participant}/balance", response_model=ParticipantBalance, tags=["Rewards"])
def get_balance(participant: str) -> ParticipantBalance:
    return ParticipantBalance(participant=participant, points=tour_service.get_balance(participant))


@app.get("/admin/config", response_model=EngineConfig, tags=["Admin"])
def get_config() -> EngineConfig:
    return tour_service.get_config()


@app.put("/admin/vote-threshold", response_model=EngineConfig, tags=["Admin"])
def set_vote_threshold(request: SetVoteThresholdRequest, x_participant_id: str = Header(...)) -> EngineConfig:
    tour_service.set_vote_threshold(request.threshold, x_participant_id)
    return tour_service.get_config()


@app.post("/admin/pause", response_model=EngineConfig, tags=["Admin"])
def pause_operations(x_participant_id: str = Header(...)) -> EngineConfig:
    tour_service.pause_operations(x_participant_id)
    return tour_service.get_config()


@app.post("/admin/resume", response_model=EngineConfig, tags=["Admin"])
def resume_operations(x_participant_id: str = Header(...)) -> EngineConfig:
    tour_service.resume_operations(x_participant_id)
    return tour_service.get_config()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
