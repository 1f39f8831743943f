from typing import Dict, List, Optional


class Catalog:
    """
    Read-only product and user rows, keyed by their numeric ids.
    Rows come from the catalog YAML loaded at start-up; nothing is ever written back.
    """

    def __init__(self, tables: Dict[str, List[Dict]]):
        self._products = self._index(tables.get("products", []), "product_id")
        self._users = self._index(tables.get("users", []), "user_id")

    @staticmethod
    def _index(rows: List[Dict], key: str) -> Dict[str, Dict]:
        return {str(row[key]): row for row in rows if key in row}

    @staticmethod
    def _sort_key(row_id: str):
        # numeric ids sort numerically, anything else after them as text
        return (0, int(row_id), "") if row_id.isdigit() else (1, 0, row_id)

    def list_products(self) -> List[Dict]:
        """All products ordered by product_id."""
        return [self._products[k] for k in sorted(self._products, key=self._sort_key)]

    def get_product(self, product_id: str) -> Optional[Dict]:
        return self._products.get(str(product_id))

    def get_user(self, user_id: str) -> Optional[Dict]:
        return self._users.get(str(user_id))

