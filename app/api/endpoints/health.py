from fastapi import APIRouter

router = APIRouter()


@router.get("")
def health_check():
    """
    Liveness probe. Does not touch the database or the queue.
    """
    return {"status": "ok"}
