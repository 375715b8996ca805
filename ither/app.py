"""Composition root: one backend, one set of stores, five feature modules.

``CommunityApp`` reads ``Settings.mock_mode`` once and builds every record
store for that backend. The feature modules never look at the flag again.

Example:
    >>> async def main():
    ...     async with CommunityApp(Settings(mock_mode=True)) as community:
    ...         await community.sign_in("mock-1")
    ...         await community.forum.load_posts()
    ...         print(len(community.forum.sorted_posts))
    >>>
    >>> asyncio.run(main())
"""

from typing import Optional

from ither.booklist import BooklistModule
from ither.config import Settings, settings
from ither.database import DocumentDatabase
from ither.forum import ForumModule
from ither.logging import clear_request_context, logger
from ither.marketplace import MarketplaceModule
from ither.mentorship import MentorshipModule
from ither.mirror import LocalStorage
from ither.models import UserProfile
from ither.profile import ProfileModule
from ither.repository import RepositoryFactory, StoreRegistry
from ither.seed import SeedData, make_seed
from ither.session import UserSession


class CommunityApp:
    """Wires stores, the shared session and the feature modules.

    Args:
        config: Settings (defaults to the module-level ``settings``)
        database: Document database for remote mode (created from config if None)
        storage: Local storage for persisted mirrors (created from config if None)
        seed: Demo records for mock mode (fresh ``make_seed()`` if None)

    Remote calls made before ``initialize()`` fail softly: stores log the
    error and return their failure value.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        database: Optional[DocumentDatabase] = None,
        storage: Optional[LocalStorage] = None,
        seed: Optional[SeedData] = None,
    ):
        self.config = config or settings
        self.mock_mode = self.config.mock_mode
        self.database = None if self.mock_mode else database or DocumentDatabase(self.config.database_path)
        self.storage = storage or LocalStorage(self.config.local_storage_dir)

        factory = RepositoryFactory(
            mock_mode=self.mock_mode,
            database=self.database,
            storage=self.storage,
            collection_path=self.config.collection_path,
        )
        if self.mock_mode:
            seed = seed or make_seed()
        self.stores = StoreRegistry.build(factory, seed)

        self.session = UserSession()
        self.mentorship = MentorshipModule(self.stores, self.session)
        self.booklist = BooklistModule(self.stores, self.session)
        self.forum = ForumModule(self.stores, self.session)
        self.marketplace = MarketplaceModule(self.stores, self.session)
        self.profile = ProfileModule(self.stores, self.session)

    @property
    def backend(self) -> str:
        return self.stores.backend

    async def initialize(self) -> None:
        """Open the document database (remote mode only)."""
        if self.database is not None:
            self.database.initialize()
        logger.info(f"✅ ither ready ({self.backend} backend, app {self.config.app_id})")

    def close(self) -> None:
        if self.database is not None:
            self.database.close()
        clear_request_context()

    async def __aenter__(self) -> "CommunityApp":
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()

    async def sign_in(self, user_id: str) -> Optional[UserProfile]:
        """Set the caller and load their profile, if they have one."""
        self.session.sign_in(user_id)
        return await self.profile.load_user_profile()

    def sign_out(self) -> None:
        self.session.sign_out()
        self.profile.user_profile = None
        clear_request_context()


__all__ = ["CommunityApp"]
