from __future__ import annotations

from ..core.models import Language
from .base import Runner

SEED_SQL = """\
CREATE TABLE IF NOT EXISTS Customers (
    customer_id INTEGER PRIMARY KEY,
    first_name VARCHAR(100),
    last_name VARCHAR(100),
    age INT,
    country VARCHAR(100)
);
INSERT INTO Customers VALUES
    (1, 'John', 'Doe', 31, 'USA'),
    (2, 'Robert', 'Luna', 22, 'USA'),
    (3, 'David', 'Robinson', 22, 'UK'),
    (4, 'John', 'Reinhardt', 25, 'UK'),
    (5, 'Betty', 'Doe', 28, 'UAE');

CREATE TABLE IF NOT EXISTS Orders (
    order_id INTEGER PRIMARY KEY,
    item VARCHAR(100),
    amount INT,
    customer_id INT
);
INSERT INTO Orders VALUES
    (1, 'Keyboard', 400, 4),
    (2, 'Mouse', 300, 4),
    (3, 'Monitor', 12000, 3),
    (4, 'Keyboard', 400, 1),
    (5, 'Mousepad', 250, 2);

CREATE TABLE IF NOT EXISTS Shippings (
    shipping_id INTEGER PRIMARY KEY,
    status VARCHAR(100),
    customer_id INT
);
INSERT INTO Shippings VALUES
    (1, 'Pending', 2),
    (2, 'Pending', 4),
    (3, 'Delivered', 3),
    (4, 'Pending', 5),
    (5, 'Delivered', 1);
"""

# Runs inside the container: seed the database, run the user's statements
# one by one, print the last result set as a JSON array of row objects.
_DRIVER = """\
import json, re, sqlite3, sys
conn = sqlite3.connect("mydatabase.db")
conn.row_factory = sqlite3.Row
with open("init.sql", encoding="utf-8") as f:
    conn.executescript(f.read())
with open(sys.argv[1], encoding="utf-8") as f:
    script = f.read()
rows, buf = [], ""
def run(stmt):
    global rows
    cur = conn.execute(stmt)
    if cur.description:
        rows = [dict(r) for r in cur.fetchall()]
for piece in re.split(r"(?<=;)", script):
    buf += piece
    if sqlite3.complete_statement(buf):
        run(buf)
        buf = ""
if buf.strip():
    run(buf)
conn.commit()
print(json.dumps(rows))
"""


class SqliteRunner(Runner):
    language = Language.SQLITE
    default_image = "python:3.11-slim"
    extension = ".sql"
    aliases = ("sql", "sqlite3")
    fixed_entry = "main.sql"
    init_file_name = "init.sql"
    init_file_content = SEED_SQL

    def command(self, entry: str):
        return ["python", "-c", _DRIVER, entry]
