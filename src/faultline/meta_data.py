from __future__ import annotations

from typing import Any, Dict, Optional


class MetaData:
    """Mixin for exceptions that carry their own report data.

    Exceptions inheriting from this class can attach metadata tabs, a user id
    and a context that are folded into the notification when it is delivered.
    The notification reads these attributes but never writes them.

        class PaymentDeclined(MetaData, Exception):
            pass

        exc = PaymentDeclined("card declined")
        exc.faultline_meta_data = {"payment": {"gateway": "stripe"}}
        exc.faultline_user_id = "user-42"
    """

    faultline_meta_data: Optional[Dict[str, Any]] = None
    faultline_user_id: Optional[str] = None
    faultline_context: Optional[str] = None
