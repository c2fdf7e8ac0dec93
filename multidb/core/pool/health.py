"""
Connection health check for external DBs.
"""

from typing import Any

from multidb.models import FamilyEnum, resolve_family


def probe_query(family: FamilyEnum | str | None) -> str:
    """Cheapest statement that proves a session works. Oracle needs FROM DUAL."""
    if family is not None and resolve_family(family) == FamilyEnum.ORACLE:
        return "SELECT 1 FROM DUAL"
    return "SELECT 1"


def health_check(conn: Any, family: FamilyEnum | str | None = None) -> bool:
    """
    Run the probe query on ``conn`` and return True if no exception.
    """
    cur = None
    try:
        cur = conn.cursor()
        cur.execute(probe_query(family))
        cur.fetchone()
        return True
    except Exception:
        return False
    finally:
        if cur is not None:
            try:
                cur.close()
            except Exception:
                pass
