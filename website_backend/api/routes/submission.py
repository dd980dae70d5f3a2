from fastapi import APIRouter, Depends, Request, Response

from website_backend.core.exception_handlers import generic_error_response
from website_backend.services.submission_pipeline import SubmissionPipeline


def get_pipeline(request: Request) -> SubmissionPipeline:
    """Return the pipeline built for this application instance."""
    return request.app.state.pipeline


async def submit(
    request: Request,
    pipeline: SubmissionPipeline = Depends(get_pipeline),
) -> Response:
    """Form submission endpoint.

    Expects a JSON body ``{"token": str, "payload": {field: value}}``. Answers
    204 with no content when the submission was forwarded; every rejection gets
    the same plain-text body (400, or 429 when rate limited) and a mail
    delivery failure gets 500.
    """
    result = await pipeline.process(request)
    if result.accepted:
        return Response(status_code=204)

    headers = None
    if result.retry_after_seconds is not None:
        headers = {"Retry-After": str(result.retry_after_seconds)}
    return generic_error_response(result.status_code, headers=headers)


def build_submission_router(path: str) -> APIRouter:
    """Router exposing the submission endpoint at the configured ``path``."""
    router = APIRouter(tags=["Submission"])
    router.add_api_route(
        path,
        submit,
        methods=["POST"],
        status_code=204,
        response_class=Response,
        responses={
            400: {"description": "Submission rejected"},
            429: {"description": "Too many submissions from this client"},
            500: {"description": "Mail delivery failed"},
        },
    )
    return router
