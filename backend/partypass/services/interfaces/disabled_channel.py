"""
Disabled notification channel - used when a channel has no configuration.
"""

from partypass.services.interfaces.notification_channel import Message, NotificationChannel, Outcome


class DisabledChannel(NotificationChannel):
    """
    Never sends. Stands in for a channel whose credentials are absent, so the
    dispatcher does not need to branch on missing clients.
    """

    def __init__(self, name: str):
        self.name = name

    async def send(self, message: Message) -> Outcome:
        return Outcome.not_configured()
