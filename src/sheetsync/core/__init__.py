"""Core infrastructure layer - no business logic dependencies.

This module provides foundation-level services:
- Configuration management (TOML + .env)
- Database operations (MySQL via PyMySQL, SQLite for development)
- Logging (Loguru) and console output (Rich)

The core layer has no dependencies on the domain or web layers.
"""

# Configuration
from .config import (
    Config,
    load_config,
    get_config_dir,
    get_config_path,
    get_data_dir,
    create_default_config,
)

# Database
from .database import (
    get_database_path,
    get_db_connection,
    init_database,
    begin_transaction,
    get_all_products,
    load_all_products,
    get_product_by_uuid,
    create_product,
    update_product_fields,
    delete_product,
    upsert_product_field,
    upsert_token,
    get_latest_token,
    save_sheet_id,
    get_sheet_id,
)
from .db_adapter import configure_database, is_mysql

__all__ = [
    "Config",
    "load_config",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "create_default_config",
    "get_database_path",
    "get_db_connection",
    "init_database",
    "begin_transaction",
    "get_all_products",
    "load_all_products",
    "get_product_by_uuid",
    "create_product",
    "update_product_fields",
    "delete_product",
    "upsert_product_field",
    "upsert_token",
    "get_latest_token",
    "save_sheet_id",
    "get_sheet_id",
    "configure_database",
    "is_mysql",
]
