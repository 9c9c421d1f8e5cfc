"""
Store operations for sheetsync: products, OAuth tokens and sheet mappings.

Queries are written with ? placeholders; the MySQL adapter converts them.
"""

from contextlib import contextmanager
from datetime import date, datetime, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from loguru import logger

from .config import get_data_dir
from .db_adapter import (
    Connection,
    connect_mysql,
    connect_sqlite,
    get_database_url,
    get_sqlite_path,
    is_mysql,
    is_mysql_connection,
    parse_mysql_url,
)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# Physical columns a caller may write; everything else is managed here
WRITABLE_COLUMNS = ("product_name", "quantity", "price", "discount")

# NOT-NULL columns without a default get these values when an edit creates a row
INSERT_PLACEHOLDERS: Dict[str, Any] = {
    "product_name": "New Product",
    "price": 0.0,
}

PRODUCT_SELECT = (
    "SELECT uuid, product_name, quantity, price, discount, last_updated_by FROM product"
)


def get_database_path() -> Path:
    """Get the path to the local SQLite database file."""
    return get_data_dir() / "sheetsync.db"


@contextmanager
def get_db_connection() -> Iterator[Connection]:
    """Get a database connection with proper cleanup.

    Uses the configured MySQL URL if set, otherwise a local SQLite file.
    """
    url = get_database_url()
    if is_mysql(url):
        conn = connect_mysql(parse_mysql_url(url))
    else:
        if url:
            path = get_sqlite_path(url)
        else:
            db_path = get_database_path()
            db_path.parent.mkdir(parents=True, exist_ok=True)
            path = str(db_path)
        conn = connect_sqlite(path)

    try:
        yield conn
    finally:
        conn.close()


def begin_transaction(conn: Connection) -> None:
    """Open an explicit transaction on either backend."""
    if is_mysql_connection(conn):
        conn.begin()
    elif not conn.in_transaction:
        conn.execute("BEGIN")


def init_database(conn: Connection) -> None:
    """Create the tables sheetsync needs if they do not exist."""
    if is_mysql_connection(conn):
        statements = _MYSQL_SCHEMA
    else:
        statements = _SQLITE_SCHEMA

    for statement in statements:
        conn.execute(statement)
    conn.commit()
    logger.info("Database schema ready")


# Column order of product is load-bearing: replication row images are positional
_MYSQL_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS product (
        uuid VARCHAR(64) NOT NULL PRIMARY KEY,
        product_name VARCHAR(255) NOT NULL,
        quantity INT NOT NULL DEFAULT 0,
        price DECIMAL(10, 2) NOT NULL,
        discount BOOLEAN NOT NULL DEFAULT FALSE,
        updated_at DATETIME NULL DEFAULT CURRENT_TIMESTAMP,
        last_updated_by VARCHAR(255) NOT NULL DEFAULT 'system'
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS oauth_tokens (
        user_email VARCHAR(255) NOT NULL PRIMARY KEY,
        access_token TEXT NOT NULL,
        refresh_token TEXT,
        token_type VARCHAR(32),
        expiry DATETIME,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sheet_mappings (
        name VARCHAR(64) NOT NULL PRIMARY KEY,
        spreadsheet_id VARCHAR(128) NOT NULL
    )
    """,
)

_SQLITE_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS product (
        uuid TEXT PRIMARY KEY,
        product_name TEXT NOT NULL,
        quantity INTEGER NOT NULL DEFAULT 0,
        price REAL NOT NULL,
        discount BOOLEAN NOT NULL DEFAULT 0,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        last_updated_by TEXT NOT NULL DEFAULT 'system'
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS oauth_tokens (
        user_email TEXT PRIMARY KEY,
        access_token TEXT NOT NULL,
        refresh_token TEXT,
        token_type TEXT,
        expiry TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS sheet_mappings (
        name TEXT PRIMARY KEY,
        spreadsheet_id TEXT NOT NULL
    )
    """,
)


def to_json_safe(value: Any) -> Any:
    """Convert driver values (bytes, Decimal, datetime) to JSON-friendly ones."""
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        return value.strftime(TIMESTAMP_FORMAT)
    if isinstance(value, date):
        return value.isoformat()
    return value


def now_timestamp() -> str:
    """Current local time in the store/mirror timestamp format."""
    return datetime.now().strftime(TIMESTAMP_FORMAT)


def row_to_product(row: Any) -> Dict[str, Any]:
    """Convert a product row into a plain dict with normalized types."""
    data = {key: to_json_safe(value) for key, value in dict(row).items()}
    if data.get("quantity") is not None:
        data["quantity"] = int(data["quantity"])
    if data.get("price") is not None:
        data["price"] = float(data["price"])
    if data.get("discount") is not None:
        data["discount"] = bool(data["discount"])
    return data


def get_all_products(conn: Connection) -> List[Dict[str, Any]]:
    """Get every product in store order."""
    cursor = conn.execute(PRODUCT_SELECT)
    return [row_to_product(row) for row in cursor.fetchall()]


def load_all_products() -> List[Dict[str, Any]]:
    """Get every product using a fresh connection (for background threads)."""
    with get_db_connection() as conn:
        return get_all_products(conn)


def get_product_by_uuid(conn: Connection, uuid: str) -> Optional[Dict[str, Any]]:
    """Get a single product by its key, or None if it doesn't exist."""
    cursor = conn.execute(f"{PRODUCT_SELECT} WHERE uuid = ?", (uuid,))
    row = cursor.fetchone()
    return row_to_product(row) if row else None


def create_product(
    conn: Connection,
    uuid: str,
    product_name: str,
    quantity: int,
    price: float,
    discount: bool,
    updated_by: str,
) -> None:
    """Insert a new product row."""
    conn.execute(
        """
        INSERT INTO product (uuid, product_name, quantity, price, discount, last_updated_by, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (uuid, product_name, quantity, price, discount, updated_by, now_timestamp()),
    )
    conn.commit()


def update_product_fields(
    conn: Connection, uuid: str, updates: Dict[str, Any], updated_by: str
) -> int:
    """Update whitelisted columns of one product.

    Unknown keys are ignored. Returns the number of rows changed.

    Raises:
        ValueError: If no whitelisted column is present in updates
    """
    fields = {k: v for k, v in updates.items() if k in WRITABLE_COLUMNS}
    if not fields:
        raise ValueError("No valid fields to update")

    assignments = ", ".join(f"{column} = ?" for column in fields)
    params = (*fields.values(), updated_by, now_timestamp(), uuid)
    cursor = conn.execute(
        f"UPDATE product SET {assignments}, last_updated_by = ?, updated_at = ? WHERE uuid = ?",
        params,
    )
    conn.commit()
    return cursor.rowcount


def delete_product(conn: Connection, uuid: str) -> int:
    """Delete a product. Returns the number of rows removed."""
    cursor = conn.execute("DELETE FROM product WHERE uuid = ?", (uuid,))
    conn.commit()
    return cursor.rowcount


def upsert_product_field(
    conn: Connection, uuid: str, column: str, value: Any, updated_by: str
) -> None:
    """Insert-or-update a single product column inside the caller's transaction.

    On insert, required columns other than the target get placeholder values.
    On conflict only the target column, attribution and timestamp change.
    Does not commit.
    """
    if column not in WRITABLE_COLUMNS:
        raise ValueError(f"invalid database field: {column}")

    placeholder_columns = [c for c in INSERT_PLACEHOLDERS if c != column]
    columns = ["uuid", column, *placeholder_columns, "last_updated_by", "updated_at"]
    params = (
        uuid,
        value,
        *(INSERT_PLACEHOLDERS[c] for c in placeholder_columns),
        updated_by,
        now_timestamp(),
    )

    updated_columns = (column, "last_updated_by", "updated_at")
    if is_mysql_connection(conn):
        conflict = "ON DUPLICATE KEY UPDATE " + ", ".join(
            f"{c} = VALUES({c})" for c in updated_columns
        )
    else:
        conflict = "ON CONFLICT(uuid) DO UPDATE SET " + ", ".join(
            f"{c} = excluded.{c}" for c in updated_columns
        )

    conn.execute(
        f"INSERT INTO product ({', '.join(columns)}) "
        f"VALUES ({', '.join('?' for _ in columns)}) {conflict}",
        params,
    )


# OAuth token storage


def _parse_expiry(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def upsert_token(conn: Connection, user_email: str, token_data: Dict[str, Any]) -> None:
    """Store a user's OAuth token, keeping the old refresh token if none is given.

    Args:
        conn: Database connection
        user_email: Google account the token belongs to
        token_data: {'access_token', 'refresh_token', 'token_type', 'expires_at'}
    """
    expiry = _parse_expiry(token_data.get("expires_at"))
    if expiry is None:
        expiry = datetime.now() + timedelta(hours=1)

    params = (
        user_email,
        token_data["access_token"],
        token_data.get("refresh_token") or "",
        token_data.get("token_type", "Bearer"),
        expiry.strftime(TIMESTAMP_FORMAT),
    )

    if is_mysql_connection(conn):
        query = """
            INSERT INTO oauth_tokens (user_email, access_token, refresh_token, token_type, expiry)
            VALUES (?, ?, ?, ?, ?)
            ON DUPLICATE KEY UPDATE
                access_token = VALUES(access_token),
                refresh_token = IF(VALUES(refresh_token) != '', VALUES(refresh_token), refresh_token),
                token_type = VALUES(token_type),
                expiry = VALUES(expiry),
                updated_at = CURRENT_TIMESTAMP
        """
    else:
        query = """
            INSERT INTO oauth_tokens (user_email, access_token, refresh_token, token_type, expiry)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(user_email) DO UPDATE SET
                access_token = excluded.access_token,
                refresh_token = CASE WHEN excluded.refresh_token != ''
                    THEN excluded.refresh_token ELSE refresh_token END,
                token_type = excluded.token_type,
                expiry = excluded.expiry,
                updated_at = CURRENT_TIMESTAMP
        """

    conn.execute(query, params)
    conn.commit()


def get_latest_token(conn: Connection) -> Optional[Dict[str, Any]]:
    """Load the most recently stored OAuth token.

    Returns:
        Token dict with 'expires_at' as ISO string, or None if nobody logged in
    """
    cursor = conn.execute(
        """
        SELECT user_email, access_token, refresh_token, token_type, expiry
        FROM oauth_tokens
        ORDER BY updated_at DESC LIMIT 1
        """
    )
    row = cursor.fetchone()
    if not row:
        return None

    row = dict(row)
    expiry = _parse_expiry(row["expiry"])
    return {
        "user_email": row["user_email"],
        "access_token": row["access_token"],
        "refresh_token": row["refresh_token"] or "",
        "token_type": row["token_type"] or "Bearer",
        "expires_at": expiry.isoformat() if expiry else None,
    }


# Sheet mappings


def save_sheet_id(conn: Connection, name: str, spreadsheet_id: str) -> None:
    """Remember a spreadsheet id under a logical name."""
    if is_mysql_connection(conn):
        query = """
            INSERT INTO sheet_mappings (name, spreadsheet_id) VALUES (?, ?)
            ON DUPLICATE KEY UPDATE spreadsheet_id = VALUES(spreadsheet_id)
        """
    else:
        query = """
            INSERT INTO sheet_mappings (name, spreadsheet_id) VALUES (?, ?)
            ON CONFLICT(name) DO UPDATE SET spreadsheet_id = excluded.spreadsheet_id
        """
    conn.execute(query, (name, spreadsheet_id))
    conn.commit()


def get_sheet_id(conn: Connection, name: str) -> Optional[str]:
    """Look up a spreadsheet id by logical name."""
    cursor = conn.execute(
        "SELECT spreadsheet_id FROM sheet_mappings WHERE name = ?", (name,)
    )
    row = cursor.fetchone()
    return dict(row)["spreadsheet_id"] if row else None
