# xfin/lifecycle.py
"""
Status lifecycle shared by debts and receivables.

    OPEN --(due date passes)--> OVERDUE
    OPEN / OVERDUE --(settle)--> PAID | RECEIVED   (creates a ledger transaction)
    PAID | RECEIVED --(reopen)--> OPEN | OVERDUE   (removes that transaction)

Overdue detection is persisted eagerly: every read first flips the user's
unsettled OPEN items whose due date is before today.
"""

import logging

from . import db
from .categories import resolve_category
from .errors import NotFoundError, ValidationError
from .transactions import insert_transaction
from .utils import db_date, now_iso, today

logger = logging.getLogger("xfin-backend")

OPEN = "OPEN"
OVERDUE = "OVERDUE"


class ObligationLifecycle:
    def __init__(self, table, counterpart_field, settled_status, settled_at_field, transaction_type,
                 description_prefix, messages, serializer):
        self.table = table
        self.counterpart_field = counterpart_field
        self.settled_status = settled_status
        self.settled_at_field = settled_at_field
        self.transaction_type = transaction_type
        self.description_prefix = description_prefix
        self.messages = messages
        self.serializer = serializer

    @staticmethod
    def status_for(due_date):
        return OVERDUE if due_date < today() else OPEN

    def refresh_overdue(self, user_id):
        cur = db.get_db().execute(
            f"""UPDATE {self.table} SET status=?, updated_at=CURRENT_TIMESTAMP
            WHERE user_id=? AND status=? AND {self.settled_at_field} IS NULL AND due_date < ?""",
            (OVERDUE, user_id, OPEN, today().isoformat()),
        )
        db.get_db().commit()
        if cur.rowcount:
            logger.info(f"Marked {cur.rowcount} {self.table} as overdue - User: {user_id}")

    def _fetch(self, user_id, item_id):
        row = db.query_db(f"SELECT * FROM {self.table} WHERE id=? AND user_id=?", (item_id, user_id), one=True)
        if not row:
            raise NotFoundError(self.messages["not_found"])
        return row

    def list(self, user_id):
        self.refresh_overdue(user_id)
        rows = db.query_db(
            f"""SELECT * FROM {self.table} WHERE user_id=?
            ORDER BY CASE status WHEN 'OVERDUE' THEN 0 WHEN 'OPEN' THEN 1 ELSE 2 END, due_date ASC, id ASC""",
            (user_id,),
        )
        return [self.serializer(r) for r in rows]

    def get(self, user_id, item_id):
        self.refresh_overdue(user_id)
        return self.serializer(self._fetch(user_id, item_id))

    def create(self, user_id, fields):
        fields = dict(fields)
        fields["status"] = self.status_for(fields["due_date"])
        fields["due_date"] = fields["due_date"].isoformat()
        columns = ", ".join(["user_id"] + list(fields))
        placeholders = ", ".join("?" for _ in range(len(fields) + 1))
        item_id = db.execute_db(
            f"INSERT INTO {self.table} ({columns}) VALUES ({placeholders})",
            [user_id] + list(fields.values()),
        )
        return self.get(user_id, item_id)

    def update(self, user_id, item_id, fields):
        item = self._fetch(user_id, item_id)
        if item["status"] == self.settled_status:
            raise ValidationError(self.messages["edit_settled"])

        fields = dict(fields)
        if "due_date" in fields:
            fields["status"] = self.status_for(fields["due_date"])
            fields["due_date"] = fields["due_date"].isoformat()
        if fields:
            assignments = ", ".join(f"{column}=?" for column in fields)
            db.execute_db(
                f"UPDATE {self.table} SET {assignments}, updated_at=CURRENT_TIMESTAMP WHERE id=? AND user_id=?",
                list(fields.values()) + [item_id, user_id],
            )
        return self.get(user_id, item_id)

    def delete(self, user_id, item_id):
        self._fetch(user_id, item_id)
        db.execute_db(f"DELETE FROM {self.table} WHERE id=? AND user_id=?", (item_id, user_id))

    def settle(self, user_id, item_id):
        item = self._fetch(user_id, item_id)
        if item["status"] == self.settled_status:
            raise ValidationError(self.messages["already_settled"])

        conn = db.get_db()
        with conn:
            category_id = resolve_category(user_id, item["category_id"], self.transaction_type, conn)
            tx_id = insert_transaction(
                conn,
                user_id,
                tx_type=self.transaction_type,
                amount=item["total_amount"],
                tx_date=today(),
                category_id=category_id,
                description=f"{self.description_prefix}: {item[self.counterpart_field]}",
            )
            conn.execute(
                f"""UPDATE {self.table} SET status=?, {self.settled_at_field}=?, transaction_id=?,
                updated_at=CURRENT_TIMESTAMP WHERE id=?""",
                (self.settled_status, now_iso(), tx_id, item_id),
            )
        logger.info(f"{self.table} {item_id} settled with transaction {tx_id} - User: {user_id}")
        return self.get(user_id, item_id)

    def reopen(self, user_id, item_id):
        item = self._fetch(user_id, item_id)
        if item["status"] != self.settled_status:
            raise ValidationError(self.messages["not_settled"])

        due_date = db_date(item["due_date"])
        conn = db.get_db()
        with conn:
            if item["transaction_id"]:
                conn.execute(
                    "DELETE FROM transactions WHERE id=? AND user_id=?", (item["transaction_id"], user_id)
                )
            conn.execute(
                f"""UPDATE {self.table} SET status=?, {self.settled_at_field}=NULL, transaction_id=NULL,
                updated_at=CURRENT_TIMESTAMP WHERE id=?""",
                (self.status_for(due_date), item_id),
            )
        logger.info(f"{self.table} {item_id} reopened - User: {user_id}")
        return self.get(user_id, item_id)

