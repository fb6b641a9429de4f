"""Flow state machine: fetch -> envelope -> decrypt -> parse -> validate -> forward.

Every ``run()`` owns its own state; the orchestrator only holds collaborators,
so concurrent runs share nothing mutable. The first failing stage ends the run
and nothing after it executes. Nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, List, Optional

import httpx

from sealrelay.core.config import Settings
from sealrelay.core.exceptions import DecryptionError, SealRelayError
from sealrelay.core.models import (
    STAGE_FOR_STATE,
    ClearResult,
    DemoEnvelope,
    FlowFailure,
    FlowResult,
    FlowState,
    FlowSuccess,
    HealthReport,
    WireEnvelope,
)
from sealrelay.network.client import WebhookClient
from sealrelay.security.aead import DECRYPT_FAILED, AeadCodec, DecryptStrategy
from sealrelay.security.kdf import KeyDeriver
from sealrelay.security.providers import KeyProvider, build_key_provider

from .envelope import EnvelopeValidator
from .records import RecordValidator

logger = logging.getLogger(__name__)


class _FlowRun:
    # per-invocation state and transition history

    def __init__(self) -> None:
        self.state = FlowState.IDLE
        self.trace: List[FlowState] = [FlowState.IDLE]

    def enter(self, state: FlowState) -> None:
        logger.debug("flow state %s -> %s", self.state.value, state.value)
        self.state = state
        self.trace.append(state)

    def succeed(self, records, ack) -> FlowSuccess:
        self.enter(FlowState.SUCCEEDED)
        return FlowSuccess(records=records, forward_ack=ack, trace=tuple(self.trace))

    def fail(self, error: SealRelayError) -> FlowFailure:
        stage = STAGE_FOR_STATE[self.state]
        if isinstance(error, DecryptionError):
            # authentication and decoding failures look the same from outside
            kind, message = DecryptionError.kind, DECRYPT_FAILED
        else:
            kind, message = error.kind, error.message
        logger.warning("flow failed at %s stage (%s)", stage.value, error.kind)
        self.enter(FlowState.FAILED)
        return FlowFailure(
            stage=stage,
            kind=kind,
            message=message,
            status_code=getattr(error, "status_code", None),
            error=error,
            trace=tuple(self.trace),
        )


class FlowOrchestrator:
    def __init__(
        self,
        client: WebhookClient,
        codec: AeadCodec,
        deriver: KeyDeriver,
        key_provider: KeyProvider,
        envelope_validator: Optional[EnvelopeValidator] = None,
        record_validator: Optional[RecordValidator] = None,
        strategy: DecryptStrategy = DecryptStrategy.AUTO,
    ):
        self.client = client
        self.codec = codec
        self.deriver = deriver
        self.key_provider = key_provider
        self.envelope_validator = envelope_validator or EnvelopeValidator()
        self.record_validator = record_validator or RecordValidator()
        self.strategy = strategy

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "FlowOrchestrator":
        """Wire every collaborator from ``settings``."""
        return cls(
            client=WebhookClient(settings, transport=transport),
            codec=AeadCodec(threshold=settings.stream_threshold, chunk_size=settings.chunk_size),
            deriver=KeyDeriver(algorithm=settings.kdf, iterations=settings.kdf_iterations),
            key_provider=build_key_provider(settings),
            envelope_validator=EnvelopeValidator(
                allow_demo=settings.demo_mode, encoding=settings.wire_encoding
            ),
        )

    async def close(self) -> None:
        await self.client.close()

    async def run(self) -> FlowResult:
        """Run one full flow and return its tagged outcome."""
        run = _FlowRun()
        try:
            run.enter(FlowState.FETCHING)
            payload = await self.client.fetch_envelope()

            run.enter(FlowState.VALIDATING_ENVELOPE)
            envelope = self.envelope_validator.validate(payload)

            if isinstance(envelope, DemoEnvelope):
                data: Any = list(envelope.records)
            elif isinstance(envelope, WireEnvelope):
                run.enter(FlowState.DECRYPTING)
                plaintext = await asyncio.to_thread(self._decrypt, envelope)

                run.enter(FlowState.PARSING)
                data = self.record_validator.load(plaintext)
            else:
                raise TypeError(f"unhandled envelope type {type(envelope).__name__}")

            run.enter(FlowState.VALIDATING_RECORDS)
            records = self.record_validator.validate(data)

            run.enter(FlowState.FORWARDING)
            ack = await self.client.forward(records)
        except SealRelayError as e:
            return run.fail(e)

        logger.info("flow succeeded with %d records", len(records))
        return run.succeed(records, ack)

    def _decrypt(self, wire: WireEnvelope) -> bytes:
        # runs in a worker thread; the key lives only in this frame
        envelope = self.codec.decode_envelope(wire)
        material = self.key_provider.get_key_material()
        key = self.deriver.derive(material.passphrase, material.salt)
        return self.codec.decrypt(envelope, key, self.strategy)

    async def clear(self) -> ClearResult:
        ack = await self.client.clear()
        logger.info("sink records cleared")
        return ClearResult(ack=ack)

    async def health(self) -> HealthReport:
        available = await self.client.check_health()
        return HealthReport(sink_available=available, timestamp=datetime.now(timezone.utc).isoformat())

    async def fetch_raw(self) -> Any:
        return await self.client.fetch_raw()

    def stats(self) -> dict:
        return {"codec": self.codec.performance_stats(), "kdf": self.deriver.params()}
