"""
Default join planner.

Join instructions follow the query layer's `joins` shape:

    {
        "parent": "users", "parentKey": "_id",
        "child": "posts", "childKey": "author",
        "alias": "posts", "collection": True,
        "criteria": {"where": {...}, "sort": {...}},
    }

Children are fetched with one `find` per join and attached to each parent
under `alias`. Child sort/skip/limit apply across all parents, not per
parent.

Many-to-many associations arrive as a pair of instructions. The first is
flagged `junctionTable` and points from the parent into the junction
collection (`childKey` is the junction column holding the parent key).
The second starts at the junction (`parent` is the first join's `child`)
and points at the target collection (`parentKey` is the junction column
holding the target key). Such a pair costs two `find` calls.
"""
import logging
from collections import defaultdict
from typing import Any, Hashable, Optional

from mongo_adapter.models.connection import Criteria
from mongo_adapter.services.join import FindCallback, GetPKCallback

logger = logging.getLogger(__name__)


def _hashable(value: Any) -> Optional[Hashable]:
    try:
        hash(value)
    except TypeError:
        return None
    return value


def _distinct(records: list[dict], key: str) -> list[Hashable]:
    values = []
    for record in records:
        value = _hashable(record.get(key))
        if value is not None and value not in values:
            values.append(value)
    return values


def _narrowed(criteria: Optional[dict[str, Any]], key: str, values: list) -> Criteria:
    criteria = Criteria.coerce(criteria)
    where = {**criteria.where, key: {"$in": values}}
    return criteria.model_copy(update={"where": where})


class BasicJoinPlanner:
    """Populates one-to-many, many-to-one and junction associations of a parent query."""

    async def __call__(
        self,
        *,
        instructions: Criteria,
        parent_collection: str,
        find: FindCallback,
        get_pk: GetPKCallback,
    ) -> list[dict]:
        pending = list(instructions.joins)
        parent_criteria = Criteria(
            where=instructions.where,
            sort=instructions.sort,
            skip=instructions.skip,
            limit=instructions.limit,
        )
        parents = await find(parent_collection, parent_criteria)

        while pending:
            join = pending.pop(0)
            if join.get("parent", parent_collection) != parent_collection:
                raise ValueError(
                    f"Join from '{join.get('parent')}' does not start at '{parent_collection}'"
                )
            if join.get("junctionTable"):
                if not pending or pending[0].get("parent") != join["child"]:
                    raise ValueError(
                        f"Junction join through '{join['child']}' has no second hop"
                    )
                target = pending.pop(0)
                await self._populate_through(parents, parent_collection, join, target, find, get_pk)
            else:
                await self._populate(parents, parent_collection, join, find, get_pk)

        return parents

    async def _populate(
        self,
        parents: list[dict],
        parent_collection: str,
        join: dict[str, Any],
        find: FindCallback,
        get_pk: GetPKCallback,
    ) -> None:
        child = join["child"]
        parent_key = join.get("parentKey") or get_pk(parent_collection)
        child_key = join.get("childKey") or get_pk(child)
        alias = join.get("alias", child)
        many = bool(join.get("collection"))

        values = _distinct(parents, parent_key)
        groups: dict[Hashable, list[dict]] = defaultdict(list)
        if values:
            children = await find(child, _narrowed(join.get("criteria"), child_key, values))
            for record in children:
                key = _hashable(record.get(child_key))
                if key is not None:
                    groups[key].append(record)
            logger.debug(f"Joined {len(children)} '{child}' record(s) onto '{parent_collection}'")

        for parent in parents:
            matches = groups.get(_hashable(parent.get(parent_key)), [])
            parent[alias] = list(matches) if many else (matches[0] if matches else None)

    async def _populate_through(
        self,
        parents: list[dict],
        parent_collection: str,
        join: dict[str, Any],
        target: dict[str, Any],
        find: FindCallback,
        get_pk: GetPKCallback,
    ) -> None:
        junction = join["child"]
        child = target["child"]
        parent_key = join.get("parentKey") or get_pk(parent_collection)
        link_parent_key = join["childKey"]
        link_child_key = target["parentKey"]
        child_key = target.get("childKey") or get_pk(child)
        alias = target.get("alias") or join.get("alias") or child

        refs: dict[Hashable, set] = defaultdict(set)
        children: list[dict] = []
        values = _distinct(parents, parent_key)
        if values:
            links = await find(junction, _narrowed(None, link_parent_key, values))
            for link in links:
                owner = _hashable(link.get(link_parent_key))
                ref = _hashable(link.get(link_child_key))
                if owner is not None and ref is not None:
                    refs[owner].add(ref)

            child_values = _distinct(links, link_child_key)
            if child_values:
                children = await find(
                    child, _narrowed(target.get("criteria"), child_key, child_values)
                )
            logger.debug(
                f"Joined {len(children)} '{child}' record(s) onto '{parent_collection}' "
                f"through '{junction}'"
            )

        # Walk children in query order so the target criteria's sort holds per parent.
        for parent in parents:
            wanted = refs.get(_hashable(parent.get(parent_key)), set())
            parent[alias] = [c for c in children if _hashable(c.get(child_key)) in wanted]
