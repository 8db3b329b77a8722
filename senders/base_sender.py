from abc import ABC, abstractmethod


class BaseSender(ABC):
    @abstractmethod
    async def send(self,
             to_email: str,
             subject: str,
             html_body: str,
             text_body: str = None) -> bool:
        """Delivers one message. Returns False on failure instead of raising."""
        pass
