"""
Collection handles and session management for Recipe Box.

This module provides:
- Collection: an explicit handle on one recipe database (engine + sessions)
- Per-connection SQLite pragmas (foreign keys, WAL)
- Schema creation, including the FTS5 search index and its sync triggers
- Read-only attachment of a second collection for merging
- Emptying a collection
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..models.base import Base
from ..utils.config import get_config
from ..utils.constants import SEARCH_COLUMNS, SEARCH_NAME_SEPARATOR, SEARCH_TABLE
from .exceptions import CollectionNotOpen, DatabaseError

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"

# Tables every collection must contain
EXPECTED_TABLES = (
    "recipes",
    "ingredients",
    "tags",
    "recipe_ingredients",
    "recipe_tags",
    "instructions",
)

_INGREDIENT_NAMES_SQL = (
    "SELECT COALESCE(group_concat(i.name, '{sep}'), '') FROM ingredients AS i "
    "JOIN recipe_ingredients AS ri ON i.id = ri.ingredient_id "
    "WHERE ri.recipe_id = {ref}"
)
_TAG_NAMES_SQL = (
    "SELECT COALESCE(group_concat(t.name, '{sep}'), '') FROM tags AS t "
    "JOIN recipe_tags AS rt ON t.id = rt.tag_id "
    "WHERE rt.recipe_id = {ref}"
)


def _names_subquery(template: str, ref: str) -> str:
    return template.format(sep=SEARCH_NAME_SEPARATOR, ref=ref)


SEARCH_INDEX_DDL = [
    f"""
    CREATE VIRTUAL TABLE IF NOT EXISTS {SEARCH_TABLE} USING fts5(
        {', '.join(SEARCH_COLUMNS)},
        tokenize = 'porter unicode61'
    )
    """,
    f"""
    CREATE TRIGGER IF NOT EXISTS recipe_search_after_insert
    AFTER INSERT ON recipes
    BEGIN
        INSERT INTO {SEARCH_TABLE} (rowid, name, description, author, ingredients, tags)
        VALUES (new.id, new.name, new.description, new.author, '', '');
    END
    """,
    f"""
    CREATE TRIGGER IF NOT EXISTS recipe_search_after_update
    AFTER UPDATE ON recipes
    BEGIN
        UPDATE {SEARCH_TABLE}
        SET name = new.name, description = new.description, author = new.author
        WHERE rowid = new.id;
    END
    """,
    f"""
    CREATE TRIGGER IF NOT EXISTS recipe_search_after_delete
    AFTER DELETE ON recipes
    BEGIN
        DELETE FROM {SEARCH_TABLE} WHERE rowid = old.id;
    END
    """,
    f"""
    CREATE TRIGGER IF NOT EXISTS recipe_search_ingredient_insert
    AFTER INSERT ON recipe_ingredients
    BEGIN
        UPDATE {SEARCH_TABLE}
        SET ingredients = ({_names_subquery(_INGREDIENT_NAMES_SQL, "new.recipe_id")})
        WHERE rowid = new.recipe_id;
    END
    """,
    f"""
    CREATE TRIGGER IF NOT EXISTS recipe_search_ingredient_delete
    AFTER DELETE ON recipe_ingredients
    BEGIN
        UPDATE {SEARCH_TABLE}
        SET ingredients = ({_names_subquery(_INGREDIENT_NAMES_SQL, "old.recipe_id")})
        WHERE rowid = old.recipe_id;
    END
    """,
    f"""
    CREATE TRIGGER IF NOT EXISTS recipe_search_tag_insert
    AFTER INSERT ON recipe_tags
    BEGIN
        UPDATE {SEARCH_TABLE}
        SET tags = ({_names_subquery(_TAG_NAMES_SQL, "new.recipe_id")})
        WHERE rowid = new.recipe_id;
    END
    """,
    f"""
    CREATE TRIGGER IF NOT EXISTS recipe_search_tag_delete
    AFTER DELETE ON recipe_tags
    BEGIN
        UPDATE {SEARCH_TABLE}
        SET tags = ({_names_subquery(_TAG_NAMES_SQL, "old.recipe_id")})
        WHERE rowid = old.recipe_id;
    END
    """,
]

# Index any recipe that has no search row yet (e.g. files written before the
# index existed)
SEARCH_INDEX_BACKFILL = f"""
    INSERT INTO {SEARCH_TABLE} (rowid, name, description, author, ingredients, tags)
    SELECT
        r.id,
        r.name,
        r.description,
        r.author,
        ({_names_subquery(_INGREDIENT_NAMES_SQL, "r.id")}),
        ({_names_subquery(_TAG_NAMES_SQL, "r.id")})
    FROM recipes AS r
    WHERE r.id NOT IN (SELECT rowid FROM {SEARCH_TABLE})
"""


def _set_sqlite_pragma(dbapi_connection, connection_record, read_only: bool = False):
    """
    Set SQLite pragmas on connection.

    Foreign key enforcement is required for cascading deletes and for the
    merge integrity check.
    """
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    if not read_only:
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.close()


def _is_memory_path(path: str) -> bool:
    return path == MEMORY_PATH or "mode=memory" in path


class Collection:
    """
    Handle on one recipe collection (a SQLite database file).

    Every service function takes a Collection as its first argument. A handle
    owns its engine and session factory; several handles may be open at once
    but each one expects a single writer.

    Example:
        collection = Collection("recipes.db").open()
        with collection.session_scope() as session:
            session.query(Recipe).count()
        collection.close()
    """

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        echo: bool = False,
        read_only: bool = False,
    ):
        """
        Create a closed handle.

        Args:
            path: Database file path or ":memory:". None uses the configured path.
            echo: If True, log all SQL statements
            read_only: Open the file read-only (used for merge sources)
        """
        self._path = str(path) if path is not None else None
        self._echo = echo
        self._read_only = read_only
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def path(self) -> str:
        """Database path this handle points at."""
        if self._path is None:
            self._path = str(get_config().database_path)
        return self._path

    @property
    def is_open(self) -> bool:
        """True while the handle has a live engine."""
        return self._engine is not None

    @property
    def is_memory(self) -> bool:
        return _is_memory_path(self.path)

    @property
    def read_only(self) -> bool:
        return self._read_only

    @property
    def engine(self) -> Engine:
        """The handle's engine; raises CollectionNotOpen when closed."""
        if self._engine is None:
            raise CollectionNotOpen(self._path)
        return self._engine

    def _database_url(self) -> str:
        if self.is_memory:
            return "sqlite://"
        db_path = Path(self.path).expanduser().resolve()
        db_path_str = str(db_path).replace("\\", "/")
        if self._read_only:
            return f"sqlite:///file:{db_path_str}?mode=ro&uri=true"
        return f"sqlite:///{db_path_str}"

    def _create_engine(self) -> Engine:
        database_url = self._database_url()
        logger.info(f"Creating database engine: {database_url}")

        if self.is_memory:
            # A single shared connection keeps the in-memory database alive
            engine = create_engine(
                database_url,
                echo=self._echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            engine = create_engine(
                database_url,
                echo=self._echo,
                connect_args={"check_same_thread": False, "timeout": 30},
            )

        read_only = self._read_only

        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_connection, connection_record):
            _set_sqlite_pragma(dbapi_connection, connection_record, read_only=read_only)

        return engine

    def open(self) -> "Collection":
        """
        Open the collection, creating the file and schema if needed.

        Returns:
            self, so calls can be chained

        Raises:
            DatabaseError: If the file cannot be opened or is not a collection
        """
        if self.is_open:
            return self

        if not self.is_memory and not self._read_only:
            Path(self.path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)

        engine = self._create_engine()
        try:
            if self._read_only:
                _check_tables(engine, self.path)
            else:
                init_database(engine)
        except SQLAlchemyError as e:
            engine.dispose()
            logger.error(f"Failed to open collection {self.path}: {e}")
            raise DatabaseError(f"Failed to open collection '{self.path}'", e)
        except DatabaseError:
            engine.dispose()
            raise

        self._engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        logger.info(f"Opened collection {self.path}")
        return self

    def close(self) -> None:
        """Close the collection. Safe to call on a closed handle."""
        if self._engine is None:
            return
        self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info(f"Closed collection {self.path}")

    def load(self, path: Union[str, Path]) -> "Collection":
        """
        Close the current database and open another one on this handle.

        Args:
            path: Database file path to open

        Returns:
            self
        """
        self.close()
        self._path = str(path)
        return self.open()

    def get_session(self) -> Session:
        """
        Create a new session bound to this collection.

        Raises:
            CollectionNotOpen: If the handle is closed
        """
        if self._session_factory is None:
            raise CollectionNotOpen(self._path)
        return self._session_factory()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """
        Provide a transactional scope for database operations.

        - Creates a new session
        - Commits on success
        - Rolls back on exception
        - Always closes the session

        Yields:
            Database session

        Example:
            with collection.session_scope() as session:
                session.add(Tag(name="breakfast"))
        """
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def __enter__(self) -> "Collection":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"Collection(path='{self._path}', {state})"


def _check_tables(engine: Engine, path: str) -> None:
    tables = set(inspect(engine).get_table_names())
    missing = [name for name in EXPECTED_TABLES if name not in tables]
    if missing:
        raise DatabaseError(
            f"'{path}' is not a recipe collection (missing tables: {', '.join(missing)})"
        )


def init_database(engine: Engine) -> None:
    """
    Create all tables, the search index and its triggers.

    Safe to call multiple times - existing objects are left alone and only
    unindexed recipes are added to the search index.

    Args:
        engine: Engine to initialize
    """
    logger.info("Initializing database tables")

    # Import all models to ensure they're registered with Base
    from ..models import ingredient, recipe  # noqa: F401

    Base.metadata.create_all(engine)

    with engine.begin() as conn:
        for statement in SEARCH_INDEX_DDL:
            conn.execute(text(statement))
        conn.execute(text(SEARCH_INDEX_BACKFILL))

    logger.info("Database tables initialized successfully")


def open_collection(path: Optional[Union[str, Path]] = None, echo: bool = False) -> Collection:
    """
    Open a collection, creating it if it doesn't exist.

    Args:
        path: Database file path or ":memory:". None uses the configured path.
        echo: If True, log all SQL statements

    Returns:
        Open Collection
    """
    if path is None:
        get_config().ensure_directories()
    return Collection(path, echo=echo).open()


@contextmanager
def attached_collection(source: Union[Collection, str, Path]) -> Iterator[Collection]:
    """
    Make a second collection available as a read-only source.

    An open Collection is yielded unchanged and left open. A path is opened
    read-only for the duration of the block and disposed afterwards; nothing
    about the attachment is stored in either database.

    Args:
        source: Open Collection or path to a collection file

    Raises:
        CollectionNotOpen: If a Collection is passed closed
        DatabaseError: If the path does not exist or is not a collection
    """
    if isinstance(source, Collection):
        if not source.is_open:
            raise CollectionNotOpen(source.path)
        yield source
        return

    source_path = Path(source).expanduser()
    if not source_path.exists():
        raise DatabaseError(f"Source collection '{source}' does not exist")

    attached = Collection(source_path, read_only=True).open()
    logger.debug(f"Attached source collection {source_path}")
    try:
        yield attached
    finally:
        attached.close()
        logger.debug(f"Detached source collection {source_path}")


def verify_collection(collection: Collection) -> bool:
    """
    Verify that the collection is accessible and has its tables.

    Returns:
        True if every expected table exists, False otherwise
    """
    try:
        tables = set(inspect(collection.engine).get_table_names())
    except (SQLAlchemyError, CollectionNotOpen) as e:
        logger.error(f"Collection verification failed: {e}")
        return False
    return all(name in tables for name in EXPECTED_TABLES)


def empty_collection(collection: Collection) -> None:
    """
    Delete every recipe, vocabulary row and instruction.

    The database file itself is kept and identity counters restart at 1.

    Raises:
        CollectionNotOpen: If the handle is closed
        DatabaseError: If the delete fails (nothing is removed)
    """
    statements = [
        "DELETE FROM instructions",
        "DELETE FROM recipe_tags",
        "DELETE FROM recipe_ingredients",
        "DELETE FROM recipes",
        "DELETE FROM ingredients",
        "DELETE FROM tags",
        f"DELETE FROM {SEARCH_TABLE}",
        "DELETE FROM sqlite_sequence WHERE name IN "
        "('recipes', 'ingredients', 'tags', 'instructions')",
    ]
    try:
        with collection.session_scope() as session:
            for statement in statements:
                session.execute(text(statement))
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to empty collection", e)

    logger.warning(f"Emptied collection {collection.path}")
