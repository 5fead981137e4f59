from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from app.services.github.webhook_service import (
    WebhookConfigurationError,
    WebhookDispatcher,
    WebhookPayloadError,
    WebhookSignatureError,
)

router = APIRouter()


def get_dispatcher(request: Request) -> WebhookDispatcher:
    return request.app.state.dispatcher


@router.post("/webhook")
async def handle_github_webhook(
    request: Request,
    x_github_event: Optional[str] = Header(default=None),
    x_github_delivery: Optional[str] = Header(default=None),
    x_hub_signature_256: Optional[str] = Header(default=None),
    dispatcher: WebhookDispatcher = Depends(get_dispatcher),
):
    """
    Handle GitHub webhook requests.

    Verifies the signature against the raw body and enqueues pull_request
    opened/synchronize events for the worker.

    Returns:
        `{"received": true}` for every authenticated, well-formed delivery,
        including ignored events and enqueue failures.
    """
    raw_body = await request.body()
    try:
        await dispatcher.handle(
            event_type=x_github_event,
            delivery_id=x_github_delivery,
            signature_header=x_hub_signature_256,
            raw_body=raw_body,
        )
    except WebhookConfigurationError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e
    except WebhookSignatureError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    except WebhookPayloadError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return {"received": True}
