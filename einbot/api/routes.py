from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from einbot.api.auth import require_api_key
from einbot.api.mapper import map_request_to_case, validate_case
from einbot.api.schemas import EinRequest, RunResponse
from einbot.core.errors import InputValidationError, RunInProgress
from einbot.core.models import CaseRecord, WorkflowResult
from einbot.core.runner import run_with_lock
from einbot.observability.logging import log
from einbot.queue.rq_conn import get_queue
from einbot.settings import settings
from einbot.store.run_repo import load_run, update_run

router = APIRouter()

RUN_JOB_FUNC = "einbot.queue.jobs.run_workflow_job"


def _case_from(req: EinRequest) -> CaseRecord:
    case = map_request_to_case(req)
    try:
        validate_case(case)
    except InputValidationError as e:
        log(event="request_rejected", recordId=case.record_id, problems=e.problems)
        raise HTTPException(status_code=400, detail={"status": "fail", "problems": e.problems})
    return case


def _to_response(record_id: str, result: WorkflowResult) -> RunResponse:
    if result.success:
        return RunResponse(
            status="success",
            message=result.message,
            recordId=record_id,
            einNumber=result.message,
            artifactUrl=result.artifact_url,
        )
    return RunResponse(
        status="fail",
        message=result.message,
        recordId=record_id,
        artifactUrl=result.artifact_url,
        referenceNumber=result.code if result.outcome == "recoverable" else None,
    )


@router.post("/run-irs-ein", response_model=RunResponse, dependencies=[Depends(require_api_key)])
async def run_irs_ein(req: EinRequest):
    case = _case_from(req)
    try:
        result = await run_in_threadpool(run_with_lock, case)
    except RunInProgress as e:
        log(event="request_conflict", recordId=case.record_id)
        raise HTTPException(status_code=409, detail=str(e))

    out = _to_response(case.record_id, result)
    return JSONResponse(status_code=200 if result.success else 400, content=out.model_dump())


@router.post("/run-irs-ein/async", response_model=RunResponse, status_code=202,
             dependencies=[Depends(require_api_key)])
def run_irs_ein_async(req: EinRequest):
    case = _case_from(req)
    job = get_queue().enqueue(
        RUN_JOB_FUNC,
        req.model_dump(),
        job_timeout=int(settings.RUN_JOB_TIMEOUT_SEC),
    )
    try:
        update_run(case.record_id, status="queued", outcome="", jobId=job.id)
    except Exception as e:
        log(event="run_state_write_failed", recordId=case.record_id, error=str(e)[:300])
    log(event="run_enqueued", recordId=case.record_id, jobId=job.id)
    return RunResponse(status="queued", message="queued", recordId=case.record_id, jobId=job.id)


@router.get("/runs/{record_id}", dependencies=[Depends(require_api_key)])
def get_run(record_id: str):
    state = load_run(record_id)
    if state is None:
        raise HTTPException(status_code=404, detail="run not found")
    return state.__dict__
