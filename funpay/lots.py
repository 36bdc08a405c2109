"""Listing (lot) operations for a FunPay account.

Reads a user's listings grouped by category, loads the edit form of a
listing and submits it back. Listing form fields are passed around as
LotFields so a caller can load a form, change a few values and save it.
"""

import threading
from urllib.parse import urlencode

from funpay.client import Funpay
from funpay.exceptions import UnauthorizedError
from funpay.extractor import FORM_CSRF_FIELD, extract_fields, extract_lots
from funpay.logger import get_logger
from funpay.models import LotFields, LotIndex, RequestOptions
from funpay.request import POST_HEADERS

log = get_logger(__name__)

SAVE_PATH = "/lots/offerSave"
EDIT_PATH = "/lots/offerEdit"
SAVE_LOCATION = "trade"


class Lots:
    """Listing operations bound to one account.

    Attributes:
        fp: Account client used for every request.

    Example:
        lots = Lots(fp)
        fields = lots.fields(node_id="", offer_id="123")
        fields["price"].value = "150"
        lots.save(fields)
    """

    def __init__(self, fp: Funpay) -> None:
        self.fp = fp
        self._list: LotIndex = {}
        self._lock = threading.Lock()

    def save(self, fields: LotFields, cancel: threading.Event | None = None) -> None:
        """Submit a listing form to /lots/offerSave.

        Use fields() to load the form first.

        Fields:
            - offer_id set to an existing id updates that listing;
            - offer_id = "0" creates a listing;
            - deleted = "1" deletes the listing.
        """
        body = {name: field.value for name, field in fields.items()}
        body[FORM_CSRF_FIELD] = self.fp.csrf_token
        body["location"] = SAVE_LOCATION

        response = self.fp.request(
            self.fp.base_url + SAVE_PATH,
            RequestOptions(
                method="POST",
                body=urlencode(body),
                headers=dict(POST_HEADERS),
                cancel=cancel,
            ),
        )
        response.close()

        log.info("Lot saved", offer_id=body.get("offer_id"), node_id=body.get("node_id"))

    def fields(
        self,
        node_id: str = "",
        offer_id: str = "",
        cancel: threading.Event | None = None,
    ) -> LotFields:
        """Load the edit form for a category (new listing) or an existing listing.

        Values are filled in when offer_id is given.
        """
        query = {}
        if node_id:
            query["node"] = node_id
        if offer_id:
            query["offer"] = offer_id

        url = self.fp.base_url + EDIT_PATH
        if query:
            url = f"{url}?{urlencode(query)}"

        document = self.fp.request_html(url, RequestOptions(cancel=cancel))
        return extract_fields(document)

    def by_user(self, user_id: int, cancel: threading.Event | None = None) -> LotIndex:
        """Return the listings on a user's profile page, grouped by node id."""
        document = self.fp.request_html(
            f"{self.fp.base_url}/users/{user_id}/",
            RequestOptions(cancel=cancel),
        )
        return extract_lots(document)

    def update(self, cancel: threading.Event | None = None) -> None:
        """Reload the listings of the current account. Read them with list().

        Raises:
            UnauthorizedError: If the account user id is 0; call Funpay.update() first.
        """
        user_id = self.fp.user_id
        if user_id == 0:
            raise UnauthorizedError(reason="user id is 0, update the account first")

        lots = self.by_user(user_id, cancel=cancel)

        with self._lock:
            self._list = lots

        log.info(
            "Lots updated",
            user_id=user_id,
            nodes=len(lots),
            offers=sum(len(ids) for ids in lots.values()),
        )

    def list(self) -> LotIndex:
        """Return the listings loaded by the last update(), node id -> offer ids."""
        with self._lock:
            return {node: list(ids) for node, ids in self._list.items()}
