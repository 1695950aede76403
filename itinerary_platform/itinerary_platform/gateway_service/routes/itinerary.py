"""
Itinerary pass-through.

The request body is forwarded unchanged to the planner service and its
status and body are relayed back as-is.
"""
import json
import logging

import httpx
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse, Response

router = APIRouter(tags=["itinerary"])
logger = logging.getLogger(__name__)


@router.post("/itinerary")
async def forward_itinerary(request: Request):
    body = await request.body()
    try:
        payload = json.loads(body)
    except ValueError:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "request body must be valid JSON"},
        )
    if not isinstance(payload, dict):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "request body must be a JSON object"},
        )

    client: httpx.AsyncClient = request.app.state.itinerary_client
    url = request.app.state.settings.ITINERARY_SERVICE_URL
    try:
        upstream = await client.post(url, content=body, headers={"Content-Type": "application/json"})
    except httpx.HTTPError as e:
        logger.error("Itinerary service request failed: %s", type(e).__name__)
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"error": "failed to reach itinerary service"},
        )

    logger.info("Itinerary service responded with %d (%d bytes)", upstream.status_code, len(upstream.content))
    return Response(content=upstream.content, status_code=upstream.status_code, media_type="application/json")
