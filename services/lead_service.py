"""Lead record gateway backed by Firestore.

Provides insert, update and status queries for leads, and loads the
category catalog used for description matching.
"""

from typing import Dict, Any, Optional, List
import inspect
import structlog

from firebase_admin import firestore

from config.settings import settings
from config.errors import GatewayError, ErrorCode
from models.estimate_flow import Category, Lead, LeadInsert, LeadStatusSnapshot

logger = structlog.get_logger()


class LeadService:
    """Service for lead persistence.

    All Firestore failures are re-raised as ``GatewayError`` so the flow
    controller never handles raw client exceptions.

    Note: Firebase Admin SDK for Python is synchronous. Methods are
    marked async for interface compatibility but operations are sync.
    """

    STATUS_FIELDS = ("status", "estimate_data", "error_message")

    def __init__(
        self,
        db=None,
        leads_collection: Optional[str] = None,
        categories_collection: Optional[str] = None
    ):
        """Initialize LeadService.

        Args:
            db: Optional Firestore client. If not provided, uses default.
            leads_collection: Leads collection name (default from settings).
            categories_collection: Categories collection name (default from settings).
        """
        self._db = db
        self.leads_collection = leads_collection or settings.leads_collection
        self.categories_collection = categories_collection or settings.categories_collection

    @property
    def db(self):
        """Get Firestore client (lazy initialization)."""
        if self._db is None:
            self._db = firestore.client()
        return self._db

    async def _maybe_await(self, result: Any) -> Any:
        """Await result if it is awaitable (supports AsyncMock in unit tests)."""
        if inspect.isawaitable(result):
            return await result
        return result

    async def insert_lead(self, lead: LeadInsert) -> Lead:
        """Create a lead document with a generated ID.

        Args:
            lead: Fields for the new lead.

        Returns:
            The stored lead, including its assigned ID.

        Raises:
            GatewayError: If the write fails or no ID is assigned.
        """
        record = lead.to_record()
        try:
            doc_ref = self.db.collection(self.leads_collection).document()
            await self._maybe_await(doc_ref.set({
                **record,
                "createdAt": firestore.SERVER_TIMESTAMP,
                "updatedAt": firestore.SERVER_TIMESTAMP,
            }))
            lead_id = doc_ref.id
        except Exception as e:
            logger.error("lead_insert_failed", error=str(e))
            raise GatewayError(
                kind=ErrorCode.LEAD_INSERT_FAILED,
                message=f"Failed to create lead: {str(e)}"
            )

        if not lead_id:
            raise GatewayError(
                kind=ErrorCode.LEAD_MISSING_ID,
                message="Failed to create lead - no ID returned"
            )

        logger.info(
            "lead_created",
            lead_id=lead_id,
            category=lead.category,
            is_test_estimate=bool(lead.is_test_estimate)
        )
        return Lead(id=lead_id, **record)

    async def update_lead(self, lead_id: str, data: Dict[str, Any]) -> None:
        """Update fields on an existing lead.

        Args:
            lead_id: The lead document ID.
            data: Fields to update.

        Raises:
            GatewayError: If the write fails.
        """
        try:
            doc_ref = self.db.collection(self.leads_collection).document(lead_id)
            await self._maybe_await(doc_ref.update({
                **data,
                "updatedAt": firestore.SERVER_TIMESTAMP,
            }))
            logger.info("lead_updated", lead_id=lead_id, fields=list(data.keys()))

        except Exception as e:
            logger.error("lead_update_failed", lead_id=lead_id, error=str(e))
            raise GatewayError(
                kind=ErrorCode.LEAD_UPDATE_FAILED,
                message=f"Failed to update lead: {str(e)}",
                details={"lead_id": lead_id}
            )

    async def get_lead_status(self, lead_id: str) -> Optional[LeadStatusSnapshot]:
        """Read the estimate status fields of a lead.

        Args:
            lead_id: The lead document ID.

        Returns:
            Status snapshot, or None if the lead does not exist (yet).

        Raises:
            GatewayError: If the read fails.
        """
        try:
            doc_ref = self.db.collection(self.leads_collection).document(lead_id)
            doc = await self._maybe_await(doc_ref.get())
        except Exception as e:
            logger.error("lead_status_query_failed", lead_id=lead_id, error=str(e))
            raise GatewayError(
                kind=ErrorCode.LEAD_QUERY_FAILED,
                message=f"Failed to check estimate status: {str(e)}",
                details={"lead_id": lead_id}
            )

        if not doc.exists:
            return None

        data = doc.to_dict() or {}
        return LeadStatusSnapshot(**{key: data.get(key) for key in self.STATUS_FIELDS})

    async def list_categories(self) -> List[Category]:
        """Load the category catalog.

        Returns:
            Categories in stored order. Malformed documents are skipped.

        Raises:
            GatewayError: If the read fails.
        """
        try:
            docs = self.db.collection(self.categories_collection).stream()
            raw = [{"id": doc.id, **(doc.to_dict() or {})} for doc in docs]
        except Exception as e:
            logger.error("category_load_failed", error=str(e))
            raise GatewayError(
                kind=ErrorCode.CATEGORY_LOAD_FAILED,
                message=f"Failed to load categories: {str(e)}"
            )

        categories: List[Category] = []
        for item in raw:
            try:
                categories.append(Category.model_validate(item))
            except ValueError as e:
                logger.warning("category_skipped", category_id=item.get("id"), error=str(e))
        return categories
