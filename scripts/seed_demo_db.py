#!/usr/bin/env python3
"""
Seed a local SQLite database with demo data for Tabulens development.
Usage (from the repository root):
    python scripts/seed_demo_db.py
Creates: scripts/demo.db

Every row of the owned tables belongs to DEMO_OWNER; open a session with that
owner id to see them. Columns are chosen so each inferred type shows up
(number, boolean, json, array, date, uuid, string) along with some gaps for
the data quality findings.
"""
import json
import random
import sqlite3
import uuid
from datetime import datetime, timedelta
from pathlib import Path

DB_PATH = Path(__file__).parent / "demo.db"
DEMO_OWNER = "4a7c1d9e-2b3f-4e5a-8c6d-0f1e2d3c4b5a"

DDL = [
    """
    CREATE TABLE IF NOT EXISTS customers (
        id          INTEGER PRIMARY KEY AUTOINCREMENT,
        name        TEXT    NOT NULL,
        email       TEXT    UNIQUE,
        country     TEXT,
        vip         BOOLEAN DEFAULT 0,
        created_at  TEXT,
        user_id     TEXT    NOT NULL
    )""",
    """
    CREATE TABLE IF NOT EXISTS policys (
        id          INTEGER PRIMARY KEY AUTOINCREMENT,
        customer_id INTEGER REFERENCES customers(id),
        policy_ref  TEXT    UNIQUE NOT NULL,
        product     TEXT,
        premium     REAL,
        coverage    JSON,
        tags        JSON,
        starts_on   TEXT,
        user_id     TEXT    NOT NULL
    )""",
    """
    CREATE TABLE IF NOT EXISTS claims (
        id          INTEGER PRIMARY KEY AUTOINCREMENT,
        policy_id   INTEGER REFERENCES policys(id),
        status      TEXT CHECK(status IN ('OPEN','IN_REVIEW','APPROVED','REJECTED')),
        amount      REAL,
        description TEXT,
        filed_at    TEXT,
        user_id     TEXT    NOT NULL
    )""",
    """
    CREATE TABLE IF NOT EXISTS audit_events (
        id          INTEGER PRIMARY KEY AUTOINCREMENT,
        event_type  TEXT,
        payload     JSON,
        occurred_at TEXT,
        user_id     TEXT
    )""",
]

COUNTRIES = ["US", "UK", "DE", "IN", "JP"]
PRODUCTS = ["Home", "Car", "Travel", "Health", "Pet"]
CLAIM_STATUSES = ["OPEN", "IN_REVIEW", "APPROVED", "REJECTED"]
EVENT_TYPES = ["login", "policy_viewed", "claim_filed", "document_uploaded"]


def _iso(days_back: int) -> str:
    return (datetime.now() - timedelta(days=days_back)).replace(microsecond=0).isoformat()


def seed():
    conn = sqlite3.connect(DB_PATH)
    conn.execute("PRAGMA foreign_keys=ON")
    cur = conn.cursor()

    for stmt in DDL:
        cur.execute(stmt)

    # customers (120) - about a third without a country, a few without email
    for i in range(1, 121):
        cur.execute(
            "INSERT OR IGNORE INTO customers(name, email, country, vip, created_at, user_id) VALUES (?,?,?,?,?,?)",
            (f"Customer {i}",
             None if i % 17 == 0 else f"customer{i}@example.com",
             None if i % 3 == 0 else random.choice(COUNTRIES),
             random.random() < 0.1,
             _iso(random.randint(10, 730)),
             DEMO_OWNER),
        )

    # policys (200)
    for i in range(1, 201):
        product = random.choice(PRODUCTS)
        coverage = {"limit": random.choice([10_000, 50_000, 250_000]), "deductible": random.choice([0, 250, 500])}
        tags = random.sample(["renewal", "discounted", "bundle", "paperless"], k=random.randint(0, 2))
        cur.execute(
            "INSERT OR IGNORE INTO policys(customer_id, policy_ref, product, premium, coverage, tags, starts_on, user_id) "
            "VALUES (?,?,?,?,?,?,?,?)",
            (random.randint(1, 120), f"POL-{uuid.uuid4().hex[:8].upper()}", product,
             round(random.uniform(80, 900), 2), json.dumps(coverage), json.dumps(tags),
             _iso(random.randint(0, 365)), DEMO_OWNER),
        )

    # claims (300) - descriptions are frequently left empty
    for _ in range(300):
        cur.execute(
            "INSERT INTO claims(policy_id, status, amount, description, filed_at, user_id) VALUES (?,?,?,?,?,?)",
            (random.randint(1, 200), random.choice(CLAIM_STATUSES), round(random.uniform(50, 20_000), 2),
             None if random.random() < 0.6 else "Water damage in kitchen",
             _iso(random.randint(0, 180)), DEMO_OWNER),
        )

    # audit_events (500) - not owned; visible only to sessions without an owner filter
    for _ in range(500):
        cur.execute(
            "INSERT INTO audit_events(event_type, payload, occurred_at, user_id) VALUES (?,?,?,?)",
            (random.choice(EVENT_TYPES), json.dumps({"ip": f"10.0.0.{random.randint(1, 254)}"}),
             _iso(random.randint(0, 30)), str(uuid.uuid4())),
        )

    conn.commit()
    conn.close()
    print(f"Demo database seeded: {DB_PATH}")
    print("   Tables: customers, policys, claims, audit_events")
    print(f"   Owner id: {DEMO_OWNER}")


if __name__ == "__main__":
    seed()
