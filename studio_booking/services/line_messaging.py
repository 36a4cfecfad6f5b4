import logging
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)


class LineMessagingClient:
    """
    Cliente mínimo de la LINE Messaging API (push de mensajes de texto).

    Sin token configurado el envío se omite; en modo debug el mensaje solo se
    escribe en el log.
    """

    def __init__(
        self,
        channel_access_token: Optional[str],
        base_url: str = "https://api.line.me/v2/bot",
        debug_mode: bool = False,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.channel_access_token = channel_access_token
        self.base_url = base_url.rstrip("/")
        self.debug_mode = debug_mode
        self.timeout = timeout
        self.http = session or requests.Session()

    @property
    def enabled(self) -> bool:
        return bool(self.channel_access_token) or self.debug_mode

    def push_text(self, to: str, text: str) -> Dict[str, Any]:
        return self.push_message(to, [{"type": "text", "text": text}])

    def push_message(self, to: str, messages: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Envía mensajes push a un usuario.

        Args:
            to: ID de usuario de LINE
            messages: Lista de objetos mensaje de la Messaging API

        Returns:
            Diccionario con el resultado del envío ({"success": bool, ...})
        """
        if self.debug_mode:
            logger.info(f"[LINE debug] push a {to[:8]}...: {messages}")
            return {"success": True, "mode": "debug"}

        if not self.channel_access_token:
            logger.info("LINE_CHANNEL_ACCESS_TOKEN no configurado, push omitido")
            return {"success": False, "skipped": True, "errors": ["LINE no configurado"]}

        payload = {"to": to, "messages": messages}
        try:
            response = self.http.post(
                f"{self.base_url}/message/push",
                json=payload,
                headers={
                    "Authorization": f"Bearer {self.channel_access_token}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Error enviando push de LINE: {e}")
            return {"success": False, "errors": [str(e)]}

        if response.status_code == 200:
            logger.info(f"Push de LINE enviado a {to[:8]}...")
            return {"success": True}

        error_msg = f"LINE error: {response.status_code} - {response.text}"
        logger.error(error_msg)
        return {"success": False, "status_code": response.status_code, "errors": [error_msg]}
