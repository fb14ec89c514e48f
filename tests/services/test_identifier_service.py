"""
Tests for SequenceService and IdentifierService.
"""

import json
from random import Random

import pytest

from warehouse_kernel.domain.policies import IdentifierPolicy
from warehouse_kernel.exceptions import GenerationExhaustedError
from warehouse_kernel.services.identifier_service import IdentifierContext, IdentifierService
from warehouse_kernel.services.sequence_service import SequenceService


class TestSequenceService:

    def test_first_use_starts_at_one(self, session, db_tables):
        sequences = SequenceService(session)

        assert sequences.current_value("test_seq_a") is None
        assert sequences.next_value("test_seq_a") == 1
        assert sequences.current_value("test_seq_a") == 1

    def test_values_strictly_increase(self, session, db_tables):
        sequences = SequenceService(session)

        values = [sequences.next_value("test_seq_b") for _ in range(5)]

        assert values == [1, 2, 3, 4, 5]

    def test_sequences_are_independent(self, session, db_tables):
        sequences = SequenceService(session)
        sequences.next_value("test_seq_c")
        sequences.next_value("test_seq_c")

        assert sequences.next_value("test_seq_d") == 1


@pytest.fixture
def identifier_ctx(open_po, acting_user):
    return IdentifierContext(
        part=open_po.part,
        purchase_order=open_po,
        customer=open_po.customer,
        quantity=25,
        lot_id="LOT-2024-01",
        gate_id="G1",
        user=acting_user,
    )


class TestIdentifierService:

    def test_first_candidate_is_bare_id(self, session, deterministic_clock, identifier_ctx):
        service = IdentifierService(session, deterministic_clock)

        generated = service.generate(identifier_ctx)

        assert generated.unique_id == "UML-SP100-SUP01-25-LOT202401/2024"
        assert generated.barcode.startswith("BC2401")
        assert len(generated.barcode) == 12

    def test_taken_id_gets_suffix(
        self, session, deterministic_clock, identifier_ctx, scan_in, open_po
    ):
        scan_in(open_po, quantity=25, lot_id="LOT-2024-01")
        service = IdentifierService(session, deterministic_clock, rng=Random(7))

        generated = service.generate(identifier_ctx)

        base, year = generated.unique_id.rsplit("/", 1)
        assert year == "2024"
        assert base.startswith("UML-SP100-SUP01-25-LOT202401-")
        assert len(base.rsplit("-", 1)[1]) == 4

    def test_exhaustion(self, session, deterministic_clock, identifier_ctx, scan_in, open_po):
        scan_in(open_po, quantity=25, lot_id="LOT-2024-01")
        service = IdentifierService(
            session, deterministic_clock, policy=IdentifierPolicy(max_attempts=1)
        )

        with pytest.raises(GenerationExhaustedError) as exc_info:
            service.generate(identifier_ctx)
        assert exc_info.value.attempts == 1
        assert exc_info.value.base_id == "UML-SP100-SUP01-25-LOT202401/2024"

    def test_custom_prefixes(self, session, deterministic_clock, identifier_ctx):
        service = IdentifierService(
            session,
            deterministic_clock,
            policy=IdentifierPolicy(unique_id_prefix="WH", barcode_prefix="QX"),
        )

        generated = service.generate(identifier_ctx)

        assert generated.unique_id.startswith("WH-")
        assert generated.barcode.startswith("QX2401")

    def test_qr_payload_summarises_item(
        self, session, deterministic_clock, identifier_ctx, open_po, acting_user
    ):
        service = IdentifierService(session, deterministic_clock)

        payload = json.loads(service.generate(identifier_ctx).qr_payload)

        assert payload["po"] == {"id": str(open_po.id), "poNumber": open_po.po_number}
        assert payload["quantity"] == 25
        assert payload["gateId"] == "G1"
        assert payload["createdBy"] == acting_user.username
        assert payload["createdAt"] == deterministic_clock.now().isoformat()

    def test_render_label_without_renderer(self, session, deterministic_clock):
        assert IdentifierService(session, deterministic_clock).render_label("X") is None
