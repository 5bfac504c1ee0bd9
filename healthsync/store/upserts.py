"""INSERT ... ON CONFLICT query builder for the record store.

Two conflict policies are used, matching the two entity families:

    - append-only (workouts, health_metrics):  ON CONFLICT (healthkit_uuid) DO NOTHING
    - mutable     (activity_rings, sync_anchors): ON CONFLICT (user_id, ...) DO UPDATE

Dedup keys:
    - workouts:       (healthkit_uuid)
    - health_metrics: (healthkit_uuid)
    - activity_rings: (user_id, date)
    - sync_anchors:   (user_id, data_type)

The UNIQUE constraints are the authoritative dedup mechanism; concurrent
writers racing on the same key are resolved by the conflict clause, so no
application-level locking is needed.
"""

from __future__ import annotations

#: Appended to RETURNING to tell an INSERT apart from a conflict UPDATE.
#: ``xmax`` is 0 only for a freshly inserted row version.
INSERTED_FLAG = "(xmax = 0) AS inserted"


def build_upsert_query(
    table: str,
    columns: list[str],
    conflict_columns: list[str],
    update_columns: list[str] | None = None,
    touch_column: str | None = "updated_at",
    returning: str | None = "id",
) -> str:
    """Build a PostgreSQL INSERT ... ON CONFLICT query.

    On conflict, updates ``update_columns`` from EXCLUDED and sets
    ``touch_column`` to NOW().  Pass an empty ``update_columns`` list for
    DO NOTHING (the RETURNING clause then yields no row for a duplicate).

    Args:
        table:            Target table name.
        columns:          All columns to insert, in parameter order.
        conflict_columns: Columns that define the UNIQUE constraint.
        update_columns:   Columns to overwrite on conflict (defaults to non-key columns).
        touch_column:     Timestamp column refreshed on update, or None.
        returning:        RETURNING expression, or None.

    Returns:
        Parameterized SQL string.
    """
    if update_columns is None:
        update_columns = [c for c in columns if c not in conflict_columns]

    placeholders = ", ".join(f"${i + 1}" for i in range(len(columns)))
    col_list = ", ".join(columns)
    conflict_target = ", ".join(conflict_columns)

    if update_columns:
        assignments = [f"{col} = EXCLUDED.{col}" for col in update_columns]
        if touch_column:
            assignments.append(f"{touch_column} = NOW()")
        do_clause = f"DO UPDATE SET {', '.join(assignments)}"
    else:
        do_clause = "DO NOTHING"

    query = (
        f"INSERT INTO {table} ({col_list}) "
        f"VALUES ({placeholders}) "
        f"ON CONFLICT ({conflict_target}) {do_clause}"
    )
    if returning:
        query += f" RETURNING {returning}"
    return query
