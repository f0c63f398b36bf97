# =============================================================================
# sector_core/data/supabase_client.py
# Supabase Client Configuration for the Sector Recovery Tracker
# Handles client creation and per-table CRUD operations
# =============================================================================

from __future__ import annotations
from typing import Optional, Dict, Any, List
import logging

import pandas as pd

from sector_core.config import AppSettings
from sector_core.errors import ConfigurationError, to_backend_error

logger = logging.getLogger(__name__)


def create_supabase_client(settings: AppSettings):
    """
    Create a Supabase client from settings.

    Returns:
        supabase.Client instance

    Raises:
        ConfigurationError: If the client cannot be created
    """
    from supabase import create_client, Client

    try:
        client: Client = create_client(settings.supabase_url, settings.supabase_key)
    except Exception as e:
        raise ConfigurationError(
            f"Failed to initialize Supabase client: {e}",
            config_key="supabase",
        ) from e

    logger.info("Supabase client initialized")
    return client


class SupabaseService:
    """
    Generic Supabase service for CRUD operations on one table.

    Every request goes through ``_execute`` so SDK failures leave this class
    as a classified BackendError.
    """

    PAGE_SIZE = 1000

    def __init__(self, table_name: str, client):
        """
        Args:
            table_name: Name of the Supabase table
            client: Supabase client
        """
        self.table_name = table_name
        self.client = client

    def _execute(self, query, action: str):
        try:
            return query.execute()
        except Exception as e:
            error = to_backend_error(e, table=self.table_name, action=action)
            logger.warning(f"{error.code} {error.message}")
            raise error from e

    def _apply_filters(self, query, filters: Dict[str, Any]):
        for col, val in filters.items():
            query = query.eq(col, val)
        return query

    def fetch_all(self, order_by: Optional[str] = None, ascending: bool = True) -> pd.DataFrame:
        """
        Fetch ALL records from the table (handles Supabase 1000 row limit).

        Args:
            order_by: Column to order by (optional)
            ascending: Sort order (default: ascending)

        Returns:
            DataFrame with all records
        """
        all_data: List[Dict[str, Any]] = []
        offset = 0

        while True:
            query = self.client.table(self.table_name).select("*")

            if order_by:
                query = query.order(order_by, desc=not ascending)

            query = query.range(offset, offset + self.PAGE_SIZE - 1)
            response = self._execute(query, "select")

            if not response.data:
                break

            all_data.extend(response.data)
            if len(response.data) < self.PAGE_SIZE:
                break
            offset += self.PAGE_SIZE

        return pd.DataFrame(all_data)

    def select(
        self,
        filters: Dict[str, Any],
        columns: str = "*",
        order_by: Optional[str] = None,
        ascending: bool = True,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Rows matching all equality filters."""
        query = self._apply_filters(self.client.table(self.table_name).select(columns), filters)
        if order_by:
            query = query.order(order_by, desc=not ascending)
        if limit is not None:
            query = query.limit(limit)
        return self._execute(query, "select").data or []

    def insert(self, data: Any) -> List[Dict[str, Any]]:
        """
        Insert one record (dict) or many (list of dicts).

        Returns:
            Inserted rows as returned by PostgREST
        """
        response = self._execute(self.client.table(self.table_name).insert(data), "insert")
        return response.data or []

    def update(self, filters: Dict[str, Any], data: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Update records matching filters."""
        query = self._apply_filters(self.client.table(self.table_name).update(data), filters)
        return self._execute(query, "update").data or []

    def delete(self, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Delete records matching filters."""
        query = self._apply_filters(self.client.table(self.table_name).delete(), filters)
        return self._execute(query, "delete").data or []

