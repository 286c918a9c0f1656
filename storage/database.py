"""
Database management for the government dataset catalogue
SQLite-based storage implementing the dataset store read interface
"""

import sqlite3
import logging
import json
import time
from contextlib import contextmanager
from typing import List, Dict, Optional, Any, Sequence, Iterator
from datetime import datetime
from pathlib import Path

from catalog.models import Agency, Dataset, DatasetRelation, parse_string_list, ACCESSIBILITY_API
from storage.base import DatasetStore, StoreUnavailableError
from utils.logging_config import log_store_operation

logger = logging.getLogger(__name__)


DATASET_SELECT = """
    SELECT
        d.*,
        a.code AS agency_code,
        a.name AS agency_name,
        a.description AS agency_description,
        a.website AS agency_website,
        (SELECT COUNT(*) FROM dataset_relations r WHERE r.to_id = d.id) AS incoming_relations,
        (SELECT COUNT(*) FROM dataset_relations r WHERE r.from_id = d.id) AS outgoing_relations
    FROM datasets d
    LEFT JOIN agencies a ON a.id = d.agency_id
"""

RECENT_ORDER = " ORDER BY d.updated_at DESC, d.rowid DESC"


def _like(term: str) -> str:
    """Build a LIKE pattern matching the term anywhere, with wildcards escaped"""
    escaped = term.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
    return f"%{escaped}%"


class DatabaseManager(DatasetStore):
    """
    Manages the local SQLite database of datasets, agencies and relations

    Keyword and domain sets are stored as JSON text. Reads raise
    StoreUnavailableError on database failure; writes log and return False.
    """

    def __init__(self, db_path: str = "./data/datasets.db"):
        """
        Initialize database manager

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

        # Ensure directory exists
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self._init_database()

        logger.info(f"Database initialized at {db_path}")

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def _init_database(self):
        """Create database tables and indexes"""

        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS agencies (
                    id TEXT PRIMARY KEY,
                    code TEXT NOT NULL UNIQUE,
                    name TEXT NOT NULL,
                    description TEXT,
                    website TEXT,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS datasets (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    description TEXT,
                    keywords TEXT DEFAULT '[]',
                    domains TEXT DEFAULT '[]',
                    agency_id TEXT NOT NULL,
                    accessibility TEXT DEFAULT 'public',
                    frequency TEXT,
                    format TEXT,
                    api_endpoint TEXT,
                    download_url TEXT,
                    data_portal_url TEXT,
                    collection_date TEXT,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,

                    FOREIGN KEY (agency_id) REFERENCES agencies(id),
                    CHECK (accessibility IN ('public', 'api', 'request-only'))
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS tags (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL UNIQUE
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS dataset_tags (
                    dataset_id TEXT NOT NULL,
                    tag_id INTEGER NOT NULL,

                    PRIMARY KEY (dataset_id, tag_id),
                    FOREIGN KEY (dataset_id) REFERENCES datasets(id) ON DELETE CASCADE,
                    FOREIGN KEY (tag_id) REFERENCES tags(id) ON DELETE CASCADE
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS dataset_relations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    from_id TEXT NOT NULL,
                    to_id TEXT NOT NULL,
                    relation_type TEXT NOT NULL,
                    description TEXT,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,

                    UNIQUE (from_id, to_id, relation_type),
                    FOREIGN KEY (from_id) REFERENCES datasets(id) ON DELETE CASCADE,
                    FOREIGN KEY (to_id) REFERENCES datasets(id) ON DELETE CASCADE
                )
            """)

            indexes = [
                "CREATE INDEX IF NOT EXISTS idx_datasets_name ON datasets(name)",
                "CREATE INDEX IF NOT EXISTS idx_datasets_agency_id ON datasets(agency_id)",
                "CREATE INDEX IF NOT EXISTS idx_datasets_accessibility ON datasets(accessibility)",
                "CREATE INDEX IF NOT EXISTS idx_datasets_updated_at ON datasets(updated_at)",
                "CREATE INDEX IF NOT EXISTS idx_dataset_tags_tag_id ON dataset_tags(tag_id)",
                "CREATE INDEX IF NOT EXISTS idx_relations_from_id ON dataset_relations(from_id)",
                "CREATE INDEX IF NOT EXISTS idx_relations_to_id ON dataset_relations(to_id)"
            ]

            for index in indexes:
                try:
                    conn.execute(index)
                except sqlite3.Error as e:
                    logger.warning(f"Failed to create index: {e}")

    # ===== WRITES =====

    def store_agency(self, agency: Agency) -> bool:
        """
        Store or update an agency

        Args:
            agency: Agency to store

        Returns:
            True if successful, False otherwise
        """
        try:
            with self._connect() as conn:
                conn.execute("""
                    INSERT INTO agencies (id, code, name, description, website)
                    VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        code = excluded.code,
                        name = excluded.name,
                        description = excluded.description,
                        website = excluded.website
                """, (agency.id, agency.code, agency.name, agency.description, agency.website))
                return True

        except sqlite3.Error as e:
            logger.error(f"Failed to store agency {agency.code}: {e}")
            return False

    def store_dataset(self, dataset: Dataset) -> bool:
        """
        Store or update a dataset together with its tags

        Args:
            dataset: Dataset to store

        Returns:
            True if successful, False otherwise
        """
        try:
            with self._connect() as conn:
                self._upsert_dataset(conn, dataset)
                return True

        except sqlite3.Error as e:
            logger.error(f"Failed to store dataset {dataset.id}: {e}")
            return False

    def store_datasets(self, datasets: List[Dataset]) -> int:
        """
        Store multiple datasets in one transaction

        Returns:
            Number of datasets stored
        """
        if not datasets:
            return 0

        start = time.time()
        try:
            with self._connect() as conn:
                for dataset in datasets:
                    self._upsert_dataset(conn, dataset)

            log_store_operation(logger, 'INSERT', 'datasets', len(datasets), time.time() - start)
            return len(datasets)

        except sqlite3.Error as e:
            log_store_operation(logger, 'INSERT', 'datasets', 0, time.time() - start,
                                success=False, error=str(e))
            return 0

    def _upsert_dataset(self, conn: sqlite3.Connection, dataset: Dataset):
        updated_at = dataset.updated_at or datetime.now().isoformat()

        conn.execute("""
            INSERT INTO datasets (
                id, name, description, keywords, domains, agency_id, accessibility,
                frequency, format, api_endpoint, download_url, data_portal_url,
                collection_date, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                name = excluded.name,
                description = excluded.description,
                keywords = excluded.keywords,
                domains = excluded.domains,
                agency_id = excluded.agency_id,
                accessibility = excluded.accessibility,
                frequency = excluded.frequency,
                format = excluded.format,
                api_endpoint = excluded.api_endpoint,
                download_url = excluded.download_url,
                data_portal_url = excluded.data_portal_url,
                collection_date = excluded.collection_date,
                updated_at = excluded.updated_at
        """, (
            dataset.id,
            dataset.name,
            dataset.description,
            json.dumps(list(dataset.keywords)),
            json.dumps(list(dataset.domains)),
            dataset.agency_id,
            dataset.accessibility,
            dataset.frequency,
            dataset.format,
            dataset.api_endpoint,
            dataset.download_url,
            dataset.data_portal_url,
            dataset.collection_date,
            updated_at
        ))

        conn.execute("DELETE FROM dataset_tags WHERE dataset_id = ?", (dataset.id,))
        for tag in dataset.tags:
            conn.execute("INSERT OR IGNORE INTO tags (name) VALUES (?)", (tag,))
            conn.execute("""
                INSERT OR IGNORE INTO dataset_tags (dataset_id, tag_id)
                SELECT ?, id FROM tags WHERE name = ?
            """, (dataset.id, tag))

    def store_relation(self, relation: DatasetRelation) -> bool:
        """
        Store a directed relation between two datasets

        Returns:
            True if successful, False otherwise
        """
        try:
            with self._connect() as conn:
                cursor = conn.execute("""
                    INSERT INTO dataset_relations (from_id, to_id, relation_type, description)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(from_id, to_id, relation_type) DO UPDATE SET
                        description = excluded.description
                """, (relation.from_id, relation.to_id, relation.relation_type, relation.description))
                relation.id = relation.id or cursor.lastrowid
                return True

        except sqlite3.Error as e:
            logger.error(f"Failed to store relation {relation.from_id} -> {relation.to_id}: {e}")
            return False

    # ===== READS (dataset store interface) =====

    def _query_datasets(self, operation: str, sql: str, params: Sequence[Any]) -> List[Dataset]:
        """Run a dataset SELECT, attach tags and convert rows"""
        start = time.time()
        try:
            with self._connect() as conn:
                rows = conn.execute(sql, list(params)).fetchall()
                datasets = [self._row_to_dataset(row) for row in rows]
                self._attach_tags(conn, datasets)

        except sqlite3.Error as e:
            log_store_operation(logger, operation, 'datasets', 0, time.time() - start,
                                success=False, error=str(e))
            raise StoreUnavailableError(f"{operation} failed: {e}") from e

        log_store_operation(logger, operation, 'datasets', len(datasets), time.time() - start)
        return datasets

    def find_by_text_match(self,
                           terms: Sequence[str],
                           domain_filter: Optional[str] = None,
                           agency_filter: Optional[str] = None,
                           limit: int = 20) -> List[Dataset]:
        """
        Find datasets containing any term in name, description, keywords, tags or domains

        Args:
            terms: Candidate terms (raw query, keywords, domains)
            domain_filter: Restrict to datasets in this domain
            agency_filter: Restrict to datasets of the agency with this code
            limit: Maximum datasets to return

        Returns:
            Matching datasets, most recently updated first
        """
        sql = DATASET_SELECT + " WHERE 1=1"
        params: List[Any] = []

        conditions = []
        for term in dict.fromkeys(t for t in terms if t):
            pattern = _like(term)
            conditions.extend([
                "d.name LIKE ? ESCAPE '\\'",
                "d.description LIKE ? ESCAPE '\\'",
                "d.keywords LIKE ? ESCAPE '\\'",
                "d.domains LIKE ? ESCAPE '\\'",
                """EXISTS (
                    SELECT 1 FROM dataset_tags dt JOIN tags t ON t.id = dt.tag_id
                    WHERE dt.dataset_id = d.id AND t.name LIKE ? ESCAPE '\\'
                )"""
            ])
            params.extend([pattern] * 5)

        if conditions:
            sql += " AND (" + " OR ".join(conditions) + ")"

        if domain_filter:
            sql += " AND d.domains LIKE ? ESCAPE '\\'"
            params.append(_like(json.dumps(domain_filter)))

        if agency_filter:
            sql += " AND a.code = ?"
            params.append(agency_filter)

        sql += RECENT_ORDER + " LIMIT ?"
        params.append(limit)

        return self._query_datasets('find_by_text_match', sql, params)

    def find_by_id(self, dataset_id: str) -> Optional[Dataset]:
        datasets = self._query_datasets('find_by_id', DATASET_SELECT + " WHERE d.id = ?", [dataset_id])
        return datasets[0] if datasets else None

    def find_by_domain(self, domain: str, exclude_id: Optional[str] = None, limit: int = 10) -> List[Dataset]:
        sql = DATASET_SELECT + " WHERE d.domains LIKE ? ESCAPE '\\'"
        params: List[Any] = [_like(json.dumps(domain))]

        if exclude_id:
            sql += " AND d.id != ?"
            params.append(exclude_id)

        sql += RECENT_ORDER + " LIMIT ?"
        params.append(limit)

        return self._query_datasets('find_by_domain', sql, params)

    def find_by_agency(self, agency_id: str, exclude_id: Optional[str] = None, limit: int = 5) -> List[Dataset]:
        sql = DATASET_SELECT + " WHERE d.agency_id = ?"
        params: List[Any] = [agency_id]

        if exclude_id:
            sql += " AND d.id != ?"
            params.append(exclude_id)

        sql += RECENT_ORDER + " LIMIT ?"
        params.append(limit)

        return self._query_datasets('find_by_agency', sql, params)

    def find_by_keywords(self, keywords: Sequence[str], limit: int = 8) -> List[Dataset]:
        """Datasets whose stored keyword text contains any of the keywords"""
        keywords = [keyword for keyword in keywords if keyword]
        if not keywords:
            return []

        conditions = " OR ".join(["d.keywords LIKE ? ESCAPE '\\'"] * len(keywords))
        sql = DATASET_SELECT + f" WHERE ({conditions})" + RECENT_ORDER + " LIMIT ?"
        params = [_like(keyword) for keyword in keywords] + [limit]

        return self._query_datasets('find_by_keywords', sql, params)

    def find_api_accessible(self, limit: int = 3) -> List[Dataset]:
        sql = DATASET_SELECT + """
            WHERE d.accessibility = ? AND d.api_endpoint IS NOT NULL AND d.api_endpoint != ''
        """ + RECENT_ORDER + " LIMIT ?"

        return self._query_datasets('find_api_accessible', sql, [ACCESSIBILITY_API, limit])

    def find_recently_updated(self, limit: int = 5) -> List[Dataset]:
        return self._query_datasets('find_recently_updated', DATASET_SELECT + RECENT_ORDER + " LIMIT ?", [limit])

    def get_relations(self, dataset_id: str) -> List[DatasetRelation]:
        """
        Get relations touching a dataset in either direction

        Args:
            dataset_id: Dataset identifier

        Returns:
            Relations with both endpoint datasets attached
        """
        start = time.time()
        try:
            with self._connect() as conn:
                rows = conn.execute("""
                    SELECT * FROM dataset_relations
                    WHERE from_id = ? OR to_id = ?
                    ORDER BY id
                """, (dataset_id, dataset_id)).fetchall()

        except sqlite3.Error as e:
            log_store_operation(logger, 'get_relations', 'dataset_relations', 0, time.time() - start,
                                success=False, error=str(e))
            raise StoreUnavailableError(f"get_relations failed: {e}") from e

        relations = [
            DatasetRelation(
                id=row['id'],
                from_id=row['from_id'],
                to_id=row['to_id'],
                relation_type=row['relation_type'],
                description=row['description']
            )
            for row in rows
        ]

        endpoint_ids = {r.from_id for r in relations} | {r.to_id for r in relations}
        if endpoint_ids:
            placeholders = ', '.join('?' for _ in endpoint_ids)
            endpoints = self._query_datasets(
                'get_relations',
                DATASET_SELECT + f" WHERE d.id IN ({placeholders})",
                list(endpoint_ids)
            )
            by_id = {dataset.id: dataset for dataset in endpoints}

            for relation in relations:
                relation.from_dataset = by_id.get(relation.from_id)
                relation.to_dataset = by_id.get(relation.to_id)

        log_store_operation(logger, 'get_relations', 'dataset_relations', len(relations), time.time() - start)
        return relations

    # ===== BROWSING =====

    def _browse_filters(self, domain: Optional[str], agency_code: Optional[str]) -> tuple:
        clause = " WHERE 1=1"
        params: List[Any] = []

        if domain:
            clause += " AND d.domains LIKE ? ESCAPE '\\'"
            params.append(_like(json.dumps(domain)))
        if agency_code:
            clause += " AND a.code = ?"
            params.append(agency_code)

        return clause, params

    def list_datasets(self,
                      domain: Optional[str] = None,
                      agency_code: Optional[str] = None,
                      limit: int = 50,
                      offset: int = 0) -> List[Dataset]:
        """
        Browse datasets, most recently updated first

        Args:
            domain: Optional domain filter
            agency_code: Optional agency code filter
            limit: Maximum datasets to return
            offset: Number of datasets to skip
        """
        clause, params = self._browse_filters(domain, agency_code)
        sql = DATASET_SELECT + clause + RECENT_ORDER + " LIMIT ? OFFSET ?"
        return self._query_datasets('list_datasets', sql, params + [limit, offset])

    def count_datasets(self, domain: Optional[str] = None, agency_code: Optional[str] = None) -> int:
        clause, params = self._browse_filters(domain, agency_code)
        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    "SELECT COUNT(*) FROM datasets d LEFT JOIN agencies a ON a.id = d.agency_id" + clause,
                    params
                )
                return cursor.fetchone()[0]

        except sqlite3.Error as e:
            logger.error(f"Failed to count datasets: {e}")
            raise StoreUnavailableError(f"count_datasets failed: {e}") from e

    def get_agencies(self) -> List[Agency]:
        try:
            with self._connect() as conn:
                rows = conn.execute("SELECT * FROM agencies ORDER BY code").fetchall()

        except sqlite3.Error as e:
            logger.error(f"Failed to get agencies: {e}")
            return []

        return [
            Agency(id=row['id'], code=row['code'], name=row['name'],
                   description=row['description'], website=row['website'])
            for row in rows
        ]

    def get_statistics(self) -> Dict:
        """
        Get database statistics

        Returns:
            Dictionary with counts by agency, accessibility and domain
        """
        try:
            with self._connect() as conn:
                stats = {}

                stats['total_datasets'] = conn.execute("SELECT COUNT(*) FROM datasets").fetchone()[0]
                stats['total_agencies'] = conn.execute("SELECT COUNT(*) FROM agencies").fetchone()[0]
                stats['total_relations'] = conn.execute("SELECT COUNT(*) FROM dataset_relations").fetchone()[0]

                cursor = conn.execute("""
                    SELECT a.code, COUNT(d.id)
                    FROM agencies a
                    LEFT JOIN datasets d ON d.agency_id = a.id
                    GROUP BY a.code
                    ORDER BY COUNT(d.id) DESC
                """)
                stats['agencies'] = {row[0]: row[1] for row in cursor.fetchall()}

                cursor = conn.execute("""
                    SELECT accessibility, COUNT(*)
                    FROM datasets
                    GROUP BY accessibility
                """)
                stats['accessibility'] = {row[0]: row[1] for row in cursor.fetchall()}

                domain_counts: Dict[str, int] = {}
                for row in conn.execute("SELECT id, domains FROM datasets"):
                    for domain in parse_string_list(row['domains'], f"domains of {row['id']}"):
                        domain_counts[domain] = domain_counts.get(domain, 0) + 1
                stats['domains'] = dict(sorted(domain_counts.items(), key=lambda item: item[1], reverse=True))

                cursor = conn.execute("SELECT page_count * page_size as size FROM pragma_page_count(), pragma_page_size()")
                stats['database_size'] = cursor.fetchone()[0]

                return stats

        except sqlite3.Error as e:
            logger.error(f"Failed to get statistics: {e}")
            return {}

    # ===== CONVERSION =====

    def _row_to_dataset(self, row: sqlite3.Row) -> Dataset:
        """Convert database row to Dataset object"""

        agency = None
        if row['agency_code'] is not None:
            agency = Agency(
                id=row['agency_id'],
                code=row['agency_code'],
                name=row['agency_name'],
                description=row['agency_description'],
                website=row['agency_website']
            )

        return Dataset(
            id=row['id'],
            name=row['name'],
            description=row['description'] or '',
            keywords=parse_string_list(row['keywords'], f"keywords of {row['id']}"),
            domains=parse_string_list(row['domains'], f"domains of {row['id']}"),
            agency_id=row['agency_id'],
            agency=agency,
            accessibility=row['accessibility'],
            incoming_relations=row['incoming_relations'] or 0,
            outgoing_relations=row['outgoing_relations'] or 0,
            frequency=row['frequency'],
            format=row['format'],
            api_endpoint=row['api_endpoint'],
            download_url=row['download_url'],
            data_portal_url=row['data_portal_url'],
            collection_date=row['collection_date'],
            updated_at=row['updated_at']
        )

    def _attach_tags(self, conn: sqlite3.Connection, datasets: List[Dataset]):
        if not datasets:
            return

        by_id = {dataset.id: dataset for dataset in datasets}
        placeholders = ', '.join('?' for _ in by_id)
        cursor = conn.execute(f"""
            SELECT dt.dataset_id, t.name
            FROM dataset_tags dt
            JOIN tags t ON t.id = dt.tag_id
            WHERE dt.dataset_id IN ({placeholders})
            ORDER BY t.name
        """, list(by_id.keys()))

        for dataset_id, tag_name in cursor.fetchall():
            by_id[dataset_id].tags.append(tag_name)

    def close(self):
        """Close database connections"""
        pass  # Connections are opened per call

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
