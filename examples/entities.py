"""Declared entities used by the example declaration files."""

from waypoint.entity import Model


class Group(Model):
    id: int | None = None
    name: str


class Person(Model):
    id: int | None = None
    name: str
    group_id: int | None = None


ENTITIES = {"Group": Group, "Person": Person}
