"""Callback API router composition for n8n success signals."""

from __future__ import annotations

import json

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from call_tracker.db import RunStateStoreError
from call_tracker.tracking import CallbackReceiver

from .runs import api_serialize_counter


def api_create_callback_router(callback_receiver: CallbackReceiver) -> APIRouter:
    """Create router accepting n8n callbacks.

    Args:
        callback_receiver: Service validating and counting callbacks.

    Returns:
        APIRouter: Router exposing `/n8n/callback`.

    Raises:
        ValueError: Raised when callback_receiver is None.
    """

    if callback_receiver is None:
        raise ValueError("callback_receiver must not be None")

    router = APIRouter(tags=["callbacks"])

    @router.post("/n8n/callback")
    async def api_n8n_callback(request: Request) -> JSONResponse:
        """Count one successful per-record notification.

        Accepted bodies: `{success: true}`, `{status: "ok"}`,
        `{flag: "success"}` or `{result: "success"}`.

        Args:
            request: Incoming request with a flexible JSON body.

        Returns:
            JSONResponse: Updated counter on accept, client error on reject.
        """

        raw_body = await request.body()
        if raw_body.strip():
            try:
                payload = json.loads(raw_body)
            except ValueError:
                return JSONResponse(
                    content={"ok": False, "message": "Callback body must be valid JSON"},
                    status_code=status.HTTP_400_BAD_REQUEST,
                )
        else:
            payload = {}

        try:
            outcome = await run_in_threadpool(callback_receiver.callback_accept, payload)
        except RunStateStoreError as error:
            return JSONResponse(
                content={"ok": False, "message": str(error)},
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

        if not outcome.accepted:
            return JSONResponse(
                content={"ok": False, "message": "Expected success flag in payload"},
                status_code=status.HTTP_400_BAD_REQUEST,
            )

        response_payload: dict[str, object] = {"ok": True, "counter": api_serialize_counter(outcome.state)}
        if outcome.duplicate:
            response_payload["duplicate"] = True
        return JSONResponse(content=response_payload, status_code=status.HTTP_200_OK)

    return router
