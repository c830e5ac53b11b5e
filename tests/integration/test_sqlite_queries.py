"""Integration tests running generated fragments against SQLite."""

from sqlalchemy import Engine, text

from esql import ESQL, FilterExpression, FilterParser, RowMapper, parse_order, parse_query
from tests.models import Car, Employee, Model


class TestSelectQueries:
    """Hand-written SELECTs built from fragments."""

    def test_select_by_identifier(self, engine: Engine, esql: ESQL):
        """Select one car joined to its model and map it back."""
        car, model = esql(Car), esql(Model)
        sql = f"""
            SELECT {car.columns()}
            FROM {car.table()}
            JOIN {model.table()} ON {car.join(Model)}
            WHERE {car.identifier()} AND {model.column("name")} = :model_name
        """
        params = {**car.bindings({"id": 2}), "model_name": "Fiesta"}
        with engine.connect() as conn:
            row = conn.execute(text(sql), params).mappings().one()

        red = RowMapper(esql.adapter).map(row, Car)
        assert red.id == 2
        assert red.color == "red"
        assert red.model_id == 1

    def test_joined_row_split_per_entity(self, engine: Engine, esql: ESQL):
        """Aliased selects split into one row per entity."""
        car, model = esql(Car), esql(Model)
        sql = f"""
            SELECT {car.select()}, {model.select(["id", "name"])}
            FROM {car.table()}
            JOIN {model.table()} ON {model.join(Car)}
            ORDER BY {car.column("id")}
        """
        with engine.connect() as conn:
            rows = conn.execute(text(sql)).mappings().all()

        mapper = RowMapper(esql.adapter)
        cars = [mapper.map(RowMapper.sub_row(r, "car_"), Car) for r in rows]
        models = [mapper.map(RowMapper.sub_row(r, "model_"), Model) for r in rows]
        assert [c.id for c in cars] == [1, 2, 3]
        assert [m.name for m in models] == ["Fiesta", "Fiesta", "Focus"]


class TestFilteredQueries:
    """SELECTs composed from FilterParser output."""

    def _query(self, engine: Engine, esql: ESQL, filters, sort=None) -> list[Car]:
        car = esql(Car)
        result = FilterParser(esql, Car).parse(filters, sort=sort)
        sql = f"""
            SELECT {car.columns()}
            FROM {car.table()}
            {result.join_clause}
            {result.where_clause}
            {result.order_by_clause}
        """
        with engine.connect() as conn:
            rows = conn.execute(text(sql), result.bindings).mappings().all()
        return RowMapper(esql.adapter).map_all(rows, Car)

    def test_boolean_and_relation_filter(self, engine: Engine, esql: ESQL):
        """Booleans bind as 1/0 and match SQLite's integer storage."""
        cars = self._query(
            engine,
            esql,
            [
                FilterExpression.condition("sold", "eq", False),
                FilterExpression.condition("model.name", "eq", "Fiesta"),
            ],
        )
        assert [c.id for c in cars] == [1]

    def test_query_string_booleans(self, engine: Engine, esql: ESQL):
        """``eq.false`` from a query string matches unsold cars."""
        unsold = self._query(engine, esql, parse_query({"sold": "eq.false"}), sort=["id"])
        assert [c.id for c in unsold] == [1, 3, 4]
        sold = self._query(engine, esql, parse_query({"sold": "eq.true"}))
        assert [c.id for c in sold] == [2]

    def test_sorted(self, engine: Engine, esql: ESQL):
        cars = self._query(
            engine,
            esql,
            parse_query({"color": "eq.blue"}),
            sort=parse_order("price.desc"),
        )
        assert [c.id for c in cars] == [3, 1]

    def test_is_null(self, engine: Engine, esql: ESQL):
        cars = self._query(engine, esql, parse_query({"model_id": "is.null"}))
        assert [c.id for c in cars] == [4]

    def test_in_and_or(self, engine: Engine, esql: ESQL):
        filters = parse_query(
            {"id": "in.(1,2,3,4)", "or": "(color.eq.black,model.name.like.*ocu*)"}
        )
        cars = self._query(engine, esql, filters, sort=["id"])
        assert [c.id for c in cars] == [3, 4]

    def test_empty_in(self, engine: Engine, esql: ESQL):
        assert self._query(engine, esql, parse_query({"id": "in.()"})) == []

    def test_self_relation_filter(self, engine: Engine, esql: ESQL):
        employee = esql(Employee)
        result = FilterParser(esql, Employee).parse(
            [FilterExpression.condition("manager.name", "eq", "Ada")]
        )
        sql = f"""
            SELECT {employee.column("name")}
            FROM {employee.table()}
            {result.join_clause}
            {result.where_clause}
        """
        with engine.connect() as conn:
            names = conn.execute(text(sql), result.bindings).scalars().all()
        assert names == ["Grace"]


class TestWriteQueries:
    """INSERT and UPDATE statements built from unqualified fragments."""

    def test_insert(self, engine: Engine, esql: ESQL):
        car = esql(Car)
        values = {"id": 5, "color": "green", "price": 5000.0, "sold": False, "model_id": 2}
        sql = f"""
            INSERT INTO {car.metadata.table} ({car.columns(values, qualified=False)})
            VALUES ({car.parameters(values)})
        """
        with engine.begin() as conn:
            conn.execute(text(sql), values)

        with engine.connect() as conn:
            row = conn.execute(
                text(f"SELECT {car.columns()} FROM {car.table()} WHERE {car.identifier()}"),
                car.bindings({"id": 5}),
            ).mappings().one()
        assert RowMapper(esql.adapter).map(row, Car).color == "green"

    def test_update(self, engine: Engine, esql: ESQL):
        car = esql(Car)
        sql = f"""
            UPDATE {car.metadata.table}
            SET {car.predicates(["color", "sold"], qualified=False)}
            WHERE {car.predicates("id", qualified=False)}
        """
        with engine.begin() as conn:
            updated = conn.execute(
                text(sql), car.bindings({"color": "white", "sold": True, "id": 4})
            )
        assert updated.rowcount == 1

        with engine.connect() as conn:
            row = conn.execute(
                text(f"SELECT {car.columns()} FROM {car.table()} WHERE {car.identifier()}"),
                car.bindings({"id": 4}),
            ).mappings().one()
        assert row["color"] == "white"
        assert row["sold"] == 1
