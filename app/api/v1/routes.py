from fastapi import APIRouter
from app.api.v1.endpoints import bids, documents, tenders

router = APIRouter(prefix="/v1")

router.include_router(tenders.router, prefix="/tenders", tags=["Tenders"])
router.include_router(bids.router, prefix="/tenders", tags=["Bids"])
router.include_router(documents.router, prefix="/documents", tags=["Documents"])
