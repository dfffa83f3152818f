from event_service.store.gateway import RecordStoreGateway, default_store_policy

__all__ = ["RecordStoreGateway", "default_store_policy"]
