# src/db/crud.py
from __future__ import annotations

import json
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from db import models
from db.database import Database


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def _row_to_product(row) -> models.Product:
    colors = tuple(
        models.ColorOption(
            id=str(c.get("id", "")),
            name=c.get("name", ""),
            name_en=c.get("name_en", ""),
            hex=c.get("hex", ""),
        )
        for c in json.loads(row["colors"] or "[]")
    )
    return models.Product(
        id=row["id"],
        name=row["name"],
        name_en=row["name_en"],
        price=float(row["price"]),
        category=row["category"],
        description=row["description"],
        image=row["image"],
        stock=int(row["stock"]),
        discount_type=row["discount_type"],
        discount_price=row["discount_price"],
        discount_end=_parse_dt(row["discount_end"]),
        discount_percentage=row["discount_percentage"],
        colors=colors,
    )


def _row_to_profile(row) -> models.UserProfile:
    return models.UserProfile(
        uid=row["uid"],
        full_name=row["full_name"],
        phone=row["phone"],
        address=row["address"],
        email=row["email"],
    )


# ---------------------------
# Catalog
# ---------------------------


async def list_categories(db: Database) -> List[models.Category]:
    async with db.connect() as conn:
        cur = await conn.execute(
            "SELECT id, name, name_en, slug, image FROM categories ORDER BY id;"
        )
        rows = await cur.fetchall()
        await cur.close()
    return [
        models.Category(
            id=row["id"],
            name=row["name"],
            name_en=row["name_en"],
            slug=row["slug"],
            image=row["image"],
        )
        for row in rows
    ]


async def list_products(
    db: Database, category: Optional[str] = None, query: str = ""
) -> List[models.Product]:
    """
    Products ordered by id, optionally restricted to a category slug.
    A non-empty query matches (case-insensitive) the Arabic name, the English
    name or the description.
    """
    phrase = (query or "").strip().lower()
    clauses: List[str] = []
    params: List[str] = []
    if category:
        clauses.append("category = ?")
        params.append(category)
    if phrase:
        like = f"%{phrase}%"
        clauses.append(
            "(LOWER(name) LIKE ? OR LOWER(name_en) LIKE ? OR LOWER(description) LIKE ?)"
        )
        params.extend([like, like, like])
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

    async with db.connect() as conn:
        cur = await conn.execute(
            f"SELECT * FROM products {where} ORDER BY id;", tuple(params)
        )
        rows = await cur.fetchall()
        await cur.close()
    return [_row_to_product(row) for row in rows]


async def get_product(db: Database, pid: str) -> Optional[models.Product]:
    """Fetch a product by id."""
    async with db.connect() as conn:
        cur = await conn.execute("SELECT * FROM products WHERE id = ?;", (pid,))
        row = await cur.fetchone()
        await cur.close()
    if not row:
        return None
    return _row_to_product(row)


# ---------------------------
# Stock
# ---------------------------


async def increment_stock(db: Database, pid: str, delta: int) -> bool:
    """
    Atomically add delta (negative to decrement) to a product's stock counter.
    Returns False when the product does not exist. Stock may go negative:
    nothing reserves inventory at checkout.
    """
    async with db.connect() as conn:
        res = await conn.execute(
            "UPDATE products SET stock = stock + ? WHERE id = ?;", (delta, pid)
        )
        await conn.commit()
        return res.rowcount > 0


# ---------------------------
# Orders
# ---------------------------


async def create_order(db: Database, order: models.Order) -> None:
    """Persist the order header and its line snapshot in one transaction."""
    async with db.connect() as conn:
        await conn.execute(
            """
            INSERT INTO orders(
                id, user_id, full_name, phone, region, address,
                total_price, shipping_fee, status, payment_method, created_at,
                consent_agreed, consent_version, consent_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                order.id,
                order.user_id,
                order.customer.full_name,
                order.customer.phone,
                order.customer.region,
                order.customer.address,
                order.total_price,
                order.shipping_fee,
                order.status,
                order.payment_method,
                _iso(order.created_at),
                int(order.consent.agreed),
                order.consent.policy_version,
                _iso(order.consent.agreed_at),
            ),
        )
        await conn.executemany(
            """
            INSERT INTO orderlines(
                order_id, line_no, product_id, name, name_en, price, quantity,
                color_label, image
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            [
                (
                    order.id,
                    line_no,
                    item.product_id,
                    item.name,
                    item.name_en,
                    item.price,
                    item.quantity,
                    item.color_label,
                    item.image,
                )
                for line_no, item in enumerate(order.items, start=1)
            ],
        )
        await conn.commit()


async def _load_order_lines(
    conn, order_ids: List[str]
) -> Dict[str, List[models.OrderItem]]:
    lines: Dict[str, List[models.OrderItem]] = {oid: [] for oid in order_ids}
    if not order_ids:
        return lines
    marks = ", ".join("?" * len(order_ids))
    cur = await conn.execute(
        f"""
        SELECT order_id, product_id, name, name_en, price, quantity, color_label, image
        FROM orderlines
        WHERE order_id IN ({marks})
        ORDER BY order_id, line_no;
        """,
        tuple(order_ids),
    )
    rows = await cur.fetchall()
    await cur.close()
    for row in rows:
        lines[row["order_id"]].append(
            models.OrderItem(
                product_id=row["product_id"],
                name=row["name"],
                name_en=row["name_en"],
                price=float(row["price"]),
                quantity=int(row["quantity"]),
                color_label=row["color_label"],
                image=row["image"],
            )
        )
    return lines


def _row_to_order(row, items: List[models.OrderItem]) -> models.Order:
    return models.Order(
        id=row["id"],
        customer=models.CustomerInfo(
            full_name=row["full_name"],
            phone=row["phone"],
            region=row["region"],
            address=row["address"],
        ),
        items=tuple(items),
        total_price=float(row["total_price"]),
        shipping_fee=float(row["shipping_fee"]),
        status=row["status"],
        created_at=_parse_dt(row["created_at"]),
        user_id=row["user_id"],
        consent=models.LegalConsent(
            agreed=bool(row["consent_agreed"]),
            policy_version=row["consent_version"],
            agreed_at=_parse_dt(row["consent_at"]),
        ),
        payment_method=row["payment_method"],
    )


async def get_order(db: Database, order_id: str) -> Optional[models.Order]:
    async with db.connect() as conn:
        cur = await conn.execute("SELECT * FROM orders WHERE id = ?;", (order_id,))
        row = await cur.fetchone()
        await cur.close()
        if not row:
            return None
        lines = await _load_order_lines(conn, [order_id])
    return _row_to_order(row, lines[order_id])


async def _list_orders(
    db: Database, where: str, params: tuple, page: int, page_size: int
) -> Tuple[List[models.Order], int]:
    async with db.connect() as conn:
        cur = await conn.execute(f"SELECT COUNT(*) FROM orders {where};", params)
        total = (await cur.fetchone())[0]
        await cur.close()

        offset = max(page - 1, 0) * page_size
        cur = await conn.execute(
            f"""
            SELECT * FROM orders {where}
            ORDER BY created_at DESC, id
            LIMIT ? OFFSET ?;
            """,
            params + (page_size, offset),
        )
        rows = await cur.fetchall()
        await cur.close()
        lines = await _load_order_lines(conn, [row["id"] for row in rows])
    return [_row_to_order(row, lines[row["id"]]) for row in rows], total


async def list_orders_for_user(
    db: Database, uid: str, page: int, page_size: int = 5
) -> Tuple[List[models.Order], int]:
    """
    A user's orders, newest first, paginated. Return (orders_for_page, total_count).
    """
    return await _list_orders(db, "WHERE user_id = ?", (uid,), page, page_size)


async def list_all_orders(
    db: Database, page: int, page_size: int = 10
) -> Tuple[List[models.Order], int]:
    """Every order, newest first, for the admin back-office."""
    return await _list_orders(db, "", (), page, page_size)


async def set_order_status(
    db: Database, order_id: str, expected: str, new_status: str
) -> bool:
    """
    Compare-and-set the status field. Returns False if the order is missing or
    its status is no longer `expected` (someone else moved it first).
    """
    async with db.connect() as conn:
        res = await conn.execute(
            "UPDATE orders SET status = ? WHERE id = ? AND status = ?;",
            (new_status, order_id, expected),
        )
        await conn.commit()
        return res.rowcount > 0


# ---------------------------
# Shipping rates
# ---------------------------


async def get_stored_shipping_rates(db: Database) -> Dict[str, float]:
    """Region -> fee as stored; regions never saved are absent."""
    async with db.connect() as conn:
        cur = await conn.execute("SELECT region, fee FROM shipping_rates;")
        rows = await cur.fetchall()
        await cur.close()
    return {row["region"]: float(row["fee"]) for row in rows}


async def save_shipping_rates(
    db: Database, rates: Dict[str, float], when: datetime
) -> None:
    """Upsert every given region; last write wins."""
    async with db.connect() as conn:
        await conn.executemany(
            """
            INSERT INTO shipping_rates(region, fee, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(region) DO UPDATE SET fee = excluded.fee,
                                              updated_at = excluded.updated_at;
            """,
            [(region, float(fee), _iso(when)) for region, fee in rates.items()],
        )
        await conn.commit()


# ---------------------------
# User profiles & email auth
# ---------------------------


async def get_profile(db: Database, uid: str) -> Optional[models.UserProfile]:
    async with db.connect() as conn:
        cur = await conn.execute(
            "SELECT uid, full_name, phone, address, email FROM users WHERE uid = ?;",
            (uid,),
        )
        row = await cur.fetchone()
        await cur.close()
    return _row_to_profile(row) if row else None


async def find_profile_by_phone(
    db: Database, phone: str
) -> Optional[models.UserProfile]:
    async with db.connect() as conn:
        cur = await conn.execute(
            """
            SELECT uid, full_name, phone, address, email
            FROM users WHERE phone = ?
            ORDER BY updated_at LIMIT 1;
            """,
            (phone,),
        )
        row = await cur.fetchone()
        await cur.close()
    return _row_to_profile(row) if row else None


async def phone_taken(
    db: Database, phone: str, exclude_uid: Optional[str] = None
) -> bool:
    """True if another profile already carries this phone number."""
    async with db.connect() as conn:
        cur = await conn.execute(
            "SELECT 1 FROM users WHERE phone = ? AND uid != ? LIMIT 1;",
            (phone, exclude_uid or ""),
        )
        row = await cur.fetchone()
        await cur.close()
        return row is not None


async def upsert_profile(
    db: Database, profile: models.UserProfile, when: datetime
) -> None:
    """Merge-write a profile; empty fields never overwrite stored values."""
    async with db.connect() as conn:
        await conn.execute(
            """
            INSERT INTO users(uid, full_name, phone, address, email, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(uid) DO UPDATE SET
                full_name = COALESCE(NULLIF(excluded.full_name, ''), users.full_name),
                phone     = COALESCE(NULLIF(excluded.phone, ''), users.phone),
                address   = COALESCE(NULLIF(excluded.address, ''), users.address),
                email     = COALESCE(NULLIF(excluded.email, ''), users.email),
                updated_at = excluded.updated_at;
            """,
            (
                profile.uid,
                profile.full_name,
                profile.phone,
                profile.address,
                profile.email,
                _iso(when),
            ),
        )
        await conn.commit()


async def email_available(db: Database, email: str) -> bool:
    """True if no user already registered with the given email."""
    async with db.connect() as conn:
        cur = await conn.execute(
            "SELECT 1 FROM users WHERE LOWER(email) = LOWER(?) LIMIT 1;", (email,)
        )
        row = await cur.fetchone()
        await cur.close()
        return row is None


async def create_email_user(
    db: Database,
    profile: models.UserProfile,
    pwd_hash: str,
    when: datetime,
) -> None:
    async with db.connect() as conn:
        await conn.execute(
            """
            INSERT INTO users(uid, full_name, phone, address, email, pwd_hash, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?);
            """,
            (
                profile.uid,
                profile.full_name,
                profile.phone,
                profile.address,
                profile.email,
                pwd_hash,
                _iso(when),
            ),
        )
        await conn.commit()


async def get_credentials(db: Database, email: str) -> Optional[Tuple[str, str]]:
    """Return (uid, pwd_hash) for an email user, or None."""
    async with db.connect() as conn:
        cur = await conn.execute(
            """
            SELECT uid, pwd_hash FROM users
            WHERE LOWER(email) = LOWER(?) AND pwd_hash IS NOT NULL;
            """,
            (email,),
        )
        row = await cur.fetchone()
        await cur.close()
    if not row:
        return None
    return row["uid"], row["pwd_hash"]


# ---------------------------
# Phone challenges
# ---------------------------


async def create_challenge(db: Database, challenge: models.PhoneChallenge) -> None:
    async with db.connect() as conn:
        await conn.execute(
            """
            INSERT INTO phone_challenges(id, phone, code, created_at, expires_at, status)
            VALUES (?, ?, ?, ?, ?, ?);
            """,
            (
                challenge.id,
                challenge.phone,
                challenge.code,
                _iso(challenge.created_at),
                _iso(challenge.expires_at),
                challenge.status,
            ),
        )
        await conn.commit()


async def get_challenge(
    db: Database, challenge_id: str
) -> Optional[models.PhoneChallenge]:
    async with db.connect() as conn:
        cur = await conn.execute(
            "SELECT * FROM phone_challenges WHERE id = ?;", (challenge_id,)
        )
        row = await cur.fetchone()
        await cur.close()
    if not row:
        return None
    return models.PhoneChallenge(
        id=row["id"],
        phone=row["phone"],
        code=row["code"],
        created_at=_parse_dt(row["created_at"]),
        expires_at=_parse_dt(row["expires_at"]),
        status=row["status"],
        attempts=row["attempts"],
    )


async def close_challenge(db: Database, challenge_id: str, status: str) -> bool:
    """Move a pending challenge to 'used' or 'invalidated'. False if not pending."""
    async with db.connect() as conn:
        res = await conn.execute(
            "UPDATE phone_challenges SET status = ? WHERE id = ? AND status = 'pending';",
            (status, challenge_id),
        )
        await conn.commit()
        return res.rowcount > 0


async def record_challenge_miss(
    db: Database, challenge_id: str, max_attempts: int
) -> int:
    """
    Count a wrong code against a pending challenge and return the new count.
    The challenge is invalidated in the same statement once max_attempts is hit.
    """
    async with db.connect() as conn:
        await conn.execute(
            """
            UPDATE phone_challenges
            SET attempts = attempts + 1,
                status = CASE WHEN attempts + 1 >= ? THEN 'invalidated' ELSE status END
            WHERE id = ? AND status = 'pending';
            """,
            (max_attempts, challenge_id),
        )
        await conn.commit()
        cur = await conn.execute(
            "SELECT attempts FROM phone_challenges WHERE id = ?;", (challenge_id,)
        )
        row = await cur.fetchone()
        await cur.close()
    return int(row[0]) if row else 0


async def invalidate_pending_challenges(db: Database, phone: str) -> int:
    async with db.connect() as conn:
        res = await conn.execute(
            """
            UPDATE phone_challenges SET status = 'invalidated'
            WHERE phone = ? AND status = 'pending';
            """,
            (phone,),
        )
        await conn.commit()
        return res.rowcount


async def count_recent_challenges(db: Database, phone: str, since: datetime) -> int:
    async with db.connect() as conn:
        cur = await conn.execute(
            "SELECT COUNT(*) FROM phone_challenges WHERE phone = ? AND created_at >= ?;",
            (phone, _iso(since)),
        )
        row = await cur.fetchone()
        await cur.close()
    return int(row[0])
