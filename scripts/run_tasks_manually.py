# scripts/run_tasks_manually.py
import logging
import os
import sys

# Корень проекта в sys.path для запуска из каталога репозитория
sys.path.append(os.getcwd())

from piercerhub.core.logging_config import setup_logging
from piercerhub.services.birthday_clients import notify_birthday_clients_task
from piercerhub.services.notification_cleanup import cleanup_old_notifications_task

logger = logging.getLogger(__name__)


def main():
    """
    Поочередно запускает фоновые задачи планировщика вручную.
    """
    setup_logging()
    print("--- Manual Task Runner ---")

    print("\n[1/2] Running: notify_birthday_clients_task...")
    notify_birthday_clients_task()
    print("Done.")

    print("\n[2/2] Running: cleanup_old_notifications_task...")
    cleanup_old_notifications_task()
    print("Done.")

    print("\n--- All tasks finished ---")


if __name__ == "__main__":
    main()
