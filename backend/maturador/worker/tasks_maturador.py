# maturador/worker/tasks_maturador.py
import asyncio
import uuid
from typing import Dict, Any

from loguru import logger

from maturador.core.database import MongoDbContext
from maturador.core.logging_config import trace_id_var
from maturador.modules.maturador.services import MaturadorService
from maturador.worker.celery_app import celery_app

async def _run_tick_async() -> Dict[str, Any]:
    async with MongoDbContext() as mongo:
        summary = await MaturadorService().run_tick(mongo.get_db())
    return summary.model_dump()

@celery_app.task(bind=True, name="maturador.run_tick", acks_late=True, ignore_result=True)
def run_tick(self) -> Dict[str, Any]:
    """Task de beat: avança a simulação de todos os maturadores em execução."""
    current_trace_id = f"task_{uuid.uuid4().hex[:12]}"
    token = trace_id_var.set(current_trace_id)
    log = logger.bind(trace_id=current_trace_id, task_name=self.name, job_id=self.request.id)
    try:
        summary = asyncio.run(_run_tick_async())
        if summary["messages"]:
            log.info(f"Maturation tick: {summary['messages']} message(s) across {summary['configs']} running config(s).")
        else:
            log.debug(f"Maturation tick: no activity ({summary['configs']} running config(s)).")
        return summary
    except ConnectionError as e:
        log.error(f"Maturation tick skipped, database unavailable: {e}")
        return {"configs": 0, "messages": 0, "paused_pairs": 0, "error": str(e)}
    finally:
        trace_id_var.reset(token)
