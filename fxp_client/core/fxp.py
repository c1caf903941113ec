import logging
from typing import Optional

from .cancel import CancelToken, check
from .errors import CommandFailed, FxpError
from .parser import Parser
from .session import FxpSession
from .sync import run_sync

logger = logging.getLogger(__name__)

PRIMARY_PASSIVE_COMMAND = "PASV"
# glFTPd rejects PASV with "435 Failed TLS negotiation on data channel" but accepts CPSV
FALLBACK_PASSIVE_COMMAND = "CPSV"
PEER_CONNECT_COMMAND = "PORT"


class FxpSessionNegotiator:
    """Opens a passive FXP data connection between a source and a target server.

    The target is put in passive mode and the source is told to connect to
    the endpoint the target advertised. Optionally a third connection to the
    target is opened so the caller can poll transfer progress.
    """

    def __init__(self, parser: Optional[Parser] = None):
        self.parser = parser or Parser()

    def negotiate(self, source, target, track_progress: bool = False,
                  token: Optional[CancelToken] = None) -> FxpSession:
        """Blocking variant. Both clients must use blocking connections."""
        return run_sync(self.negotiate_async(source, target, track_progress, token))

    async def negotiate_async(self, source, target, track_progress: bool = False,
                              token: Optional[CancelToken] = None) -> FxpSession:
        progress = None
        if track_progress:
            check(token)
            progress = target.clone()
            progress.auto_release()

        try:
            if progress is not None:
                await progress.connect(token)
                await progress.set_working_directory(await target.get_working_directory(token), token)
                logger.debug(f"Progress connection ready: {progress!r}")

            await source.set_data_type(source.config.fxp_data_type, token)
            await target.set_data_type(target.config.fxp_data_type, token)

            reply = await target.execute(PRIMARY_PASSIVE_COMMAND, token)
            if not reply.success:
                logger.info(f"{PRIMARY_PASSIVE_COMMAND} refused by target ({reply}), trying {FALLBACK_PASSIVE_COMMAND}")
                fallback = await target.execute(FALLBACK_PASSIVE_COMMAND, token)
                if not fallback.success:
                    raise CommandFailed(reply)
                reply = fallback

            endpoint = self.parser.parse_pasv_response(reply.message)
            logger.info(f"Target listening on {endpoint}")

            reply = await source.execute(f"{PEER_CONNECT_COMMAND} {endpoint.literal}", token)
            if not reply.success:
                raise CommandFailed(reply)
        except FxpError as e:
            if progress is not None:
                # the caller now owns the progress connection
                e.session = FxpSession(source, target, progress)
            raise

        return FxpSession(source=source, target=target, progress=progress)
