"""
Planificateur APScheduler pour la purge périodique du limiteur de tentatives 2FA.

Le job s'exécute toutes les 10 minutes, indépendamment du trafic, et supprime
les enregistrements dont le verrouillage est terminé depuis plus de 10 minutes.
"""

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from app.config import settings
from app.services.rate_limiter import otp_rate_limiter

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def _sweep_rate_limiter() -> None:
    """Tâche planifiée : purge des enregistrements expirés du limiteur."""
    try:
        otp_rate_limiter.sweep()
    except Exception as exc:
        logger.error("Erreur lors de la purge du limiteur 2FA : %s", exc)


def start_scheduler() -> None:
    """Démarre le planificateur en arrière-plan (appelé au démarrage de l'API)."""
    scheduler.add_job(
        _sweep_rate_limiter,
        trigger="interval",
        minutes=settings.RATE_LIMIT_SWEEP_MINUTES,
        id="otp_rate_limit_sweep",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        "Scheduler démarré — purge du limiteur 2FA toutes les %d minutes.",
        settings.RATE_LIMIT_SWEEP_MINUTES,
    )


def stop_scheduler() -> None:
    """Arrête le planificateur proprement (appelé à l'arrêt de l'API)."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler arrêté.")
