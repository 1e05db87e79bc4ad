# maturador/worker/celery_app.py
from datetime import timedelta

from celery import Celery

from maturador.core.config import settings

celery_app = Celery(
    "maturador_tasks",
    broker=settings.broker_url,
    backend=settings.result_backend,
    include=[
        "maturador.worker.tasks_maturador",
    ]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    beat_schedule={
        "maturador-tick": {
            "task": "maturador.run_tick",
            "schedule": timedelta(seconds=settings.MATURATION_TICK_SECONDS),
            # um tick atrasado não deve se acumular com o próximo
            "options": {"expires": settings.MATURATION_TICK_SECONDS},
        },
    }
)
