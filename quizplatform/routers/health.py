from fastapi import APIRouter, Depends
from quizplatform.deps import get_current_user
from quizplatform.services.models import Identity
import time
from datetime import datetime

router = APIRouter(prefix="/api/health")
start_time = time.time()


@router.get("")
async def health(user: Identity = Depends(get_current_user)):
    uptime = time.time() - start_time
    result = {
        "status": "OK",
        "uptime": round(uptime, 3),
        "date": datetime.now(),
        "role": user.role.value,
    }
    return result
