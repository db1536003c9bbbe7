"""
Relationship index reconciliation job.

Repairs drift left behind when the second write of a membership or
follow transition failed: the per-user group index (usergroups) is
rebuilt from the groups collection, and every user's following list is
rebuilt from the followers lists that name them.

Usage:
    Run via CRON:
        30 3 * * * cd /path/to/project && python -m jobs.reconcile_user_groups

    Or run directly:
        python -m jobs.reconcile_user_groups
"""

import asyncio
import logging
import sys
from datetime import datetime, timezone
from typing import Dict, Any, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from common.utils.exceptions import DatabaseException
from train.config import Settings, settings
from train.services.follows.follow_service import FollowService
from train.services.groups.user_groups_index import UserGroupsIndex

logger = logging.getLogger(__name__)

SUMMARY_KEYS = ("usersChecked", "entriesAdded", "entriesRemoved")


class ReconcileUserGroupsJob:
    """
    Reconciles the reverse indexes against their authoritative records.

    Actions performed:
    1. usergroups: for every user seen in the index or in any group,
       pull stale group ids and add missing ones
    2. follows: for every follow graph, pull stale ``following`` entries
       and add the ones implied by other users' followers lists
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        batch_size: int = 500,
        client: Optional[AsyncIOMotorClient] = None,
    ):
        """
        Initialize the reconciliation job.

        Args:
            db: Application database
            batch_size: Users processed between progress log lines
            client: Client to close when the job finishes, if owned by the job
        """
        self._client = client
        self._batch_size = batch_size
        self._user_groups_index = UserGroupsIndex(db=db)
        self._follow_service = FollowService(db=db)

    @classmethod
    def from_settings(cls, app_settings: Settings) -> "ReconcileUserGroupsJob":
        client = AsyncIOMotorClient(app_settings.MONGODB_URI)
        return cls(
            db=client[app_settings.MONGODB_DATABASE],
            batch_size=app_settings.RECONCILE_BATCH_SIZE,
            client=client,
        )

    async def run(self) -> Dict[str, Any]:
        """
        Execute both reconciliation sweeps.

        Returns:
            Dict with per-sweep results, combined totals and errors
        """
        logger.info("Starting relationship reconciliation job")
        start_time = datetime.now(timezone.utc)

        results: Dict[str, Any] = {
            "startTime": start_time.isoformat(),
            **{key: 0 for key in SUMMARY_KEYS},
            "errors": [],
        }

        sweeps = (
            ("userGroups", self._user_groups_index.reconcile_all),
            ("following", self._follow_service.reconcile_all_following),
        )
        for name, sweep in sweeps:
            try:
                outcome = await sweep(batch_size=self._batch_size)
            except DatabaseException as e:
                error_msg = f"{name} sweep failed: {e.message}"
                logger.error(error_msg)
                results["errors"].append(error_msg)
                continue

            results[name] = outcome
            for key in SUMMARY_KEYS:
                results[key] += outcome[key]
            results["errors"].extend(outcome["errors"])

        results["endTime"] = datetime.now(timezone.utc).isoformat()
        results["durationSeconds"] = (
            datetime.now(timezone.utc) - start_time
        ).total_seconds()

        logger.info(
            f"Reconciliation job completed. "
            f"Users checked: {results['usersChecked']}, "
            f"added: {results['entriesAdded']}, "
            f"removed: {results['entriesRemoved']}, "
            f"errors: {len(results['errors'])}"
        )

        return results

    async def close(self):
        """Close the database client if the job opened it."""
        if self._client is not None:
            self._client.close()


async def main():
    """Main entry point for the reconciliation job."""
    logging.basicConfig(level=settings.get_log_level(), format=settings.LOG_FORMAT)

    job = ReconcileUserGroupsJob.from_settings(settings)

    try:
        results = await job.run()

        for name in ("userGroups", "following"):
            if name in results:
                summary = {key: results[name][key] for key in SUMMARY_KEYS}
                logger.info(f"{name}: {summary}")

        for error in results["errors"]:
            logger.error(f"  - {error}")

        exit_code = 1 if results["errors"] else 0
    finally:
        await job.close()

    sys.exit(exit_code)


if __name__ == "__main__":
    asyncio.run(main())
