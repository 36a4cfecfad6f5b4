import logging
from typing import Any, Dict, Optional

import requests

from studio_booking.schemas.notification import SheetsBookingRecord

logger = logging.getLogger(__name__)


class SpreadsheetWebhookClient:
    """
    Exporta reservas a Google Sheets a través de una web app de Google Apps
    Script, que recibe `{"action": "addBooking", "data": {...}}` por POST.
    """

    def __init__(
        self,
        webapp_url: Optional[str],
        spreadsheet_id: Optional[str] = None,
        enabled: bool = True,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.webapp_url = webapp_url
        self.spreadsheet_id = spreadsheet_id
        self._enabled = enabled
        self.timeout = timeout
        self.http = session or requests.Session()

    @property
    def enabled(self) -> bool:
        return self._enabled and bool(self.webapp_url)

    def add_booking(self, record: SheetsBookingRecord) -> Dict[str, Any]:
        """
        Añade una fila de reserva a la hoja.

        Returns:
            Diccionario con el resultado ({"success": bool, ...})
        """
        if not self.enabled:
            logger.info("Exportación a Google Sheets desactivada o sin GAS_WEBAPP_URL, omitida")
            return {"success": False, "skipped": True}

        payload: Dict[str, Any] = {"action": "addBooking", "data": record.model_dump(by_alias=True)}
        if self.spreadsheet_id:
            payload["spreadsheetId"] = self.spreadsheet_id

        try:
            # Apps Script responde con 302 hacia script.googleusercontent.com
            response = self.http.post(self.webapp_url, json=payload, timeout=self.timeout, allow_redirects=True)
        except requests.RequestException as e:
            logger.error(f"Error enviando reserva {record.reservation_id} a Google Sheets: {e}")
            return {"success": False, "errors": [str(e)]}

        if not response.ok:
            error_msg = f"Google Sheets error: {response.status_code} - {response.text[:200]}"
            logger.error(error_msg)
            return {"success": False, "status_code": response.status_code, "errors": [error_msg]}

        try:
            body = response.json()
        except ValueError:
            body = {}
        if isinstance(body, dict) and body.get("success") is False:
            error_msg = f"Google Sheets rechazó la fila: {body.get('error') or body}"
            logger.error(error_msg)
            return {"success": False, "errors": [error_msg]}

        logger.info(f"Reserva {record.reservation_id} exportada a Google Sheets")
        return {"success": True}
