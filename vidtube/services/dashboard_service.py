from typing import Any, Dict

from bson import ObjectId

from vidtube.db.indexes import SUBSCRIPTIONS
from vidtube.db.store import DocumentStore
from vidtube.services import graph
from vidtube.services.pagination import Page, PageParams, paginate

STAT_FIELDS = ("totalVideos", "totalVideoViews", "totalLikes", "totalComments")


class DashboardService:
    """Channel statistics for the authenticated owner, unpublished videos included."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def stats(self, owner_id: ObjectId) -> Dict[str, Any]:
        rows = await self.store.aggregate(graph.channel_totals(owner_id))
        totals = rows[0] if rows else {}
        stats = {name: totals.get(name, 0) for name in STAT_FIELDS}
        stats["totalSubscribers"] = await self.store.count(SUBSCRIPTIONS, {"channel": owner_id})
        return stats

    async def videos(self, owner_id: ObjectId, params: PageParams) -> Page:
        return await paginate(self.store, graph.channel_videos(owner_id), params)
