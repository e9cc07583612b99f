from contextlib import asynccontextmanager
from typing import Annotated
from fastapi import FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware
import logging
import uuid
import os
from dotenv import load_dotenv

from ai import AIParseError, parse_task_text, sort_tasks_text
from logging_setup import setup_logging
from models import AcceptRequest, ParseRequest, SortTasksRequest, TaskCreate, TaskUpdate
from recurrence import validate_recurrence
from database import (
    init_db,
    check_db,
    get_tasks_for_user,
    get_task_db,
    create_task_db,
    update_task_db,
    delete_task_db,
)
from suggestions import (
    SuggestionNotFoundError,
    accept_suggestion,
    dismiss_suggestion,
    get_suggestions_for_user,
    never_suggestion,
    snooze_suggestion,
)

load_dotenv()

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Startup
    setup_logging(os.getenv("TASKMATRIX_LOG_LEVEL", "INFO"))
    init_db()
    yield
    # Shutdown (nothing to do)

app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=os.getenv("TASKMATRIX_CORS_ORIGINS", "http://localhost:5173").split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Authentication happens upstream; requests arrive with the resolved user id.
UserId = Annotated[str, Header(alias="X-User-Id", min_length=1)]


@app.get("/health")
def health() -> dict:
    if not check_db():
        raise HTTPException(status_code=503, detail="Database unavailable")
    return {"status": "ok", "database": "connected"}


@app.get("/tasks")
def get_tasks(user_id: UserId) -> list[dict]:
    return [task.model_dump(mode="json") for task in get_tasks_for_user(user_id)]


@app.get("/tasks/{task_id}")
def get_task(task_id: str, user_id: UserId) -> dict:
    task = get_task_db(user_id, task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task.model_dump(mode="json")


@app.post("/tasks", status_code=201)
def create_task(task_data: TaskCreate, user_id: UserId) -> dict:
    task = create_task_db(
        task_id=str(uuid.uuid4()),
        user_id=user_id,
        text=task_data.text,
        quadrant=task_data.quadrant,
        description=task_data.description,
        deadline=task_data.deadline,
        complexity=task_data.complexity,
        show_after=task_data.show_after,
        recurrence=validate_recurrence(task_data.recurrence),
        xp=task_data.xp,
        ai_scores=task_data.ai_scores,
    )
    return task.model_dump(mode="json")


@app.patch("/tasks/{task_id}")
def update_task(task_id: str, task_data: TaskUpdate, user_id: UserId) -> dict:
    updates = task_data.model_dump(exclude_unset=True)
    for field in ("text", "completed", "quadrant"):
        if field in updates and updates[field] is None:
            del updates[field]
    if "recurrence" in updates:
        updates["recurrence"] = validate_recurrence(updates["recurrence"])

    existing = get_task_db(user_id, task_id)
    if not existing:
        raise HTTPException(status_code=404, detail="Task not found")

    task = update_task_db(user_id, task_id, **updates)
    response = task.model_dump(mode="json")
    if task.completed and not existing.completed and task.xp:
        response["xp_gained"] = task.xp
    return response


@app.delete("/tasks/{task_id}")
def delete_task(task_id: str, user_id: UserId) -> dict:
    if not delete_task_db(user_id, task_id):
        raise HTTPException(status_code=404, detail="Task not found")
    return {"status": "deleted"}


@app.post("/ai/parse-task")
async def parse_task(request: ParseRequest) -> dict:
    """Structure free-form task text with Claude."""
    try:
        parsed = await parse_task_text(request.input)
    except AIParseError as e:
        logger.warning("Task parsing failed: %s", e)
        raise HTTPException(status_code=502, detail="Failed to parse task with AI")
    return parsed.model_dump(mode="json")


@app.post("/ai/sort-tasks")
async def sort_tasks(request: SortTasksRequest) -> list[dict]:
    """Re-categorize a batch of tasks with Claude."""
    try:
        sorted_tasks = await sort_tasks_text(request.tasks)
    except AIParseError as e:
        logger.warning("Task sorting failed: %s", e)
        raise HTTPException(status_code=502, detail="Failed to sort tasks with AI")
    return [task.model_dump(mode="json") for task in sorted_tasks]


@app.get("/suggestions")
def list_suggestions(user_id: UserId) -> list[dict]:
    return [s.model_dump(mode="json") for s in get_suggestions_for_user(user_id)]


@app.post("/suggestions/{suggestion_id}/accept")
async def accept(suggestion_id: str, request: AcceptRequest, user_id: UserId) -> dict:
    try:
        result = await accept_suggestion(user_id, suggestion_id, request.quadrant)
    except SuggestionNotFoundError:
        raise HTTPException(status_code=404, detail="Suggestion not found")

    task = get_task_db(user_id, result.task_id)
    if not task:
        raise HTTPException(status_code=500, detail="Task creation failed")
    return {"success": True, "task": task.model_dump(mode="json"), "xp": result.xp}


@app.post("/suggestions/{suggestion_id}/snooze")
def snooze(suggestion_id: str, user_id: UserId) -> dict:
    try:
        snooze_suggestion(user_id, suggestion_id)
    except SuggestionNotFoundError:
        raise HTTPException(status_code=404, detail="Suggestion not found")
    return {"success": True}


@app.post("/suggestions/{suggestion_id}/dismiss")
def dismiss(suggestion_id: str, user_id: UserId) -> dict:
    try:
        dismiss_suggestion(user_id, suggestion_id)
    except SuggestionNotFoundError:
        raise HTTPException(status_code=404, detail="Suggestion not found")
    return {"success": True}


@app.post("/suggestions/{suggestion_id}/never")
def never(suggestion_id: str, user_id: UserId) -> dict:
    try:
        never_suggestion(user_id, suggestion_id)
    except SuggestionNotFoundError:
        raise HTTPException(status_code=404, detail="Suggestion not found")
    return {"success": True}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
