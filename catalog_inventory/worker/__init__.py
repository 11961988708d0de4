from catalog_inventory.worker.worker import OutboxWorker

__all__ = ['OutboxWorker']
