"""Benchmark internal operations of fastapi-datatables to identify bottlenecks."""

import json
import time
from datetime import datetime, timedelta
from typing import Optional

from fastapi_datatables import (
    ColumnRegistry,
    ColumnResolver,
    ColumnSpec,
    DataTable,
    SearchEngine,
    SortEngine,
    normalize_request,
    unflatten_query_params,
)
from sqlmodel import Field, Session, SQLModel, create_engine, select


class Hero(SQLModel, table=True):
    """Hero model for benchmarking."""

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    secret_name: str
    age: Optional[int] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=datetime.now)
    email: str = Field(default="", index=True)
    city: str = Field(default="")


REGISTRY = ColumnRegistry(
    entities={"Hero": Hero},
    view_columns=[
        ColumnSpec(display_name="name", source="Hero.name"),
        ColumnSpec(display_name="secret_name", source="Hero.secret_name"),
        ColumnSpec(display_name="email", source="Hero.email"),
        ColumnSpec(display_name="city", source="Hero.city"),
        ColumnSpec(display_name="age", source="Hero.age", searchable=False),
    ],
)

COLUMNS = [{"data": name, "search": {"value": ""}} for name in REGISTRY.view_columns]


class HeroesTable(DataTable):
    registry = REGISTRY

    def get_raw_records(self):
        return select(Hero)

    def serialize_row(self, hero):
        return {"name": hero.name, "email": hero.email, "city": hero.city, "age": hero.age}


def time_function(func, iterations: int = 1000):
    """Time a function execution."""
    # Warmup
    for _ in range(10):
        func()

    timings = []
    for _ in range(iterations):
        start = time.perf_counter()
        func()
        end = time.perf_counter()
        timings.append(end - start)

    timings.sort()
    avg = sum(timings) / len(timings)
    p50 = timings[int(len(timings) * 0.5)]
    p95 = timings[int(len(timings) * 0.95)]
    return {"avg": avg * 1000, "p50": p50 * 1000, "p95": p95 * 1000}


def report(tests, iterations: int):
    for name, func in tests.items():
        result = time_function(func, iterations=iterations)
        print(
            f"  {name:30s} - Avg: {result['avg']:6.3f}ms, "
            f"P50: {result['p50']:6.3f}ms, P95: {result['p95']:6.3f}ms"
        )


def setup_database(num_records: int = 1000):
    """Set up in-memory database with test data."""
    engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False})
    SQLModel.metadata.create_all(engine)

    cities = ["New York", "Los Angeles", "Chicago", "Houston", "Phoenix"]
    base_time = datetime.now()

    with Session(engine) as session:
        session.add_all(
            Hero(
                name=f"Hero_{i}",
                secret_name=f"Secret_{i}",
                age=20 + (i % 60),
                created_at=base_time - timedelta(days=i % 365),
                email=f"hero_{i}@example.com",
                city=cities[i % len(cities)],
            )
            for i in range(num_records)
        )
        session.commit()

    return engine


def benchmark_normalize_request():
    """Benchmark parameter normalization for each wire shape."""
    print("\n=== Benchmark: normalize_request ===")

    order = [{"column": "0", "dir": "asc"}, {"column": "4", "dir": "desc"}]
    index_keyed = {
        "columns": {str(i): c for i, c in enumerate(COLUMNS)},
        "order": {str(i): o for i, o in enumerate(order)},
        "search": {"value": "hero chicago"},
    }
    json_encoded = {
        "columns": json.dumps(COLUMNS),
        "order": json.dumps(order),
        "search": json.dumps({"value": "hero chicago"}),
    }
    query_items = [
        (f"columns[{i}][{key}]", value)
        for i, column in enumerate(COLUMNS)
        for key, value in (("data", column["data"]), ("search][value", ""))
    ] + [("order[0][column]", "0"), ("order[0][dir]", "asc"), ("search[value]", "hero")]

    report(
        {
            "Index-keyed maps": lambda: normalize_request(index_keyed),
            "JSON-encoded strings": lambda: normalize_request(json_encoded),
            "Bracket query string": lambda: normalize_request(unflatten_query_params(query_items)),
        },
        iterations=10000,
    )


def benchmark_search_conditions():
    """Benchmark search predicate construction."""
    print("\n=== Benchmark: SearchEngine.build_conditions ===")

    resolver = ColumnResolver(REGISTRY)
    columns = resolver.searchable()
    engine = SearchEngine()

    report(
        {
            "1 atom x 4 columns": lambda: engine.build_conditions("hero", columns),
            "3 atoms x 4 columns": lambda: engine.build_conditions("hero 1 chicago", columns),
            "Metacharacters": lambda: engine.build_conditions("100% _x_", columns),
        },
        iterations=1000,
    )


def benchmark_sort_clauses():
    """Benchmark sort resolution."""
    print("\n=== Benchmark: SortEngine.build_sort_clauses ===")

    params = normalize_request(
        {
            "columns": COLUMNS,
            "order": [{"column": "0", "dir": "asc"}, {"column": "4", "dir": "desc"}],
        }
    )
    resolver = ColumnResolver(REGISTRY, params.displayed_columns)
    engine = SortEngine()

    report(
        {"2 clauses": lambda: engine.build_sort_clauses(params.order, resolver)},
        iterations=10000,
    )


def benchmark_as_json():
    """Benchmark full request processing at different database sizes."""
    print("\n=== Benchmark: DataTable.as_json ===")

    simple = normalize_request({"columns": COLUMNS, "length": "20"})
    complex_ = normalize_request(
        {
            "columns": COLUMNS,
            "start": "40",
            "length": "20",
            "order": [{"column": "4", "dir": "desc"}],
            "search": {"value": "hero chicago"},
        }
    )

    for size in (100, 1000, 10000):
        print(f"\n  Database size: {size} records")
        engine = setup_database(size)
        with Session(engine) as session:
            report(
                {
                    "Simple (no search/sort)": lambda: HeroesTable(simple).as_json(session),
                    "Complex (search + sort)": lambda: HeroesTable(complex_).as_json(session),
                },
                iterations=50,
            )


def main():
    """Run all internal benchmarks."""
    print("=" * 80)
    print("FASTAPI-DATATABLES INTERNAL BENCHMARKS")
    print("=" * 80)

    benchmark_normalize_request()
    benchmark_search_conditions()
    benchmark_sort_clauses()
    benchmark_as_json()

    print("\n" + "=" * 80)
    print("BENCHMARKS COMPLETE")
    print("=" * 80)


if __name__ == "__main__":
    main()
