import pytest

from rflink_fec.trellis import Trellis


def test_default_code_is_k7_133_171():
    t = Trellis()
    assert (t.K, t.g0, t.g1) == (7, 0o133, 0o171)
    assert t.n_states == 64
    assert t.state_mask == 63


def test_step_from_zero_state():
    t = Trellis()
    assert t.step(0, 0) == (0, 0, 0)
    # both generators tap the newest bit
    assert t.step(0, 1) == (1, 1, 1)


def test_step_drops_oldest_bit():
    t = Trellis()
    ns, _, _ = t.step(0b100000, 1)
    assert ns == 0b000001
    ns, _, _ = t.step(0b111111, 0)
    assert ns == 0b111110


def test_step_parity_matches_generators():
    t = Trellis()
    for s in range(t.n_states):
        for b in (0, 1):
            full = (s << 1) | b
            ns, o0, o1 = t.step(s, b)
            assert ns == full & 63
            assert o0 == bin(full & 0o133).count("1") % 2
            assert o1 == bin(full & 0o171).count("1") % 2


def test_every_state_has_two_in_and_two_out():
    t = Trellis()
    incoming = {s: [] for s in range(t.n_states)}
    for s in range(t.n_states):
        outs = {t.step(s, b)[0] for b in (0, 1)}
        assert len(outs) == 2
        for ns in outs:
            incoming[ns].append(s)
    assert all(len(v) == 2 for v in incoming.values())


def test_tables_agree_with_step():
    t = Trellis(K=5, g0=0o23, g1=0o35)
    tables = t.tables
    for s in range(t.n_states):
        for b in (0, 1):
            ns, o0, o1 = t.step(s, b)
            assert tables.next_state[s, b] == ns
            assert tables.outputs[s, b] == (o0 << 1) | o1

    for ns in range(t.n_states):
        lo, hi = tables.predecessors[ns]
        assert lo < hi
        for k, p in enumerate((lo, hi)):
            got_ns, o0, o1 = t.step(int(p), ns & 1)
            assert got_ns == ns
            assert tables.pred_outputs[ns, k] == (o0 << 1) | o1


def test_tables_are_read_only():
    tables = Trellis().tables
    with pytest.raises(ValueError):
        tables.next_state[0, 0] = 5


@pytest.mark.parametrize(
    "kwargs, exc",
    [
        (dict(K=1), ValueError),
        (dict(K=17), ValueError),
        (dict(K=7, g0=0), ValueError),
        (dict(K=7, g1=1 << 7), ValueError),
        (dict(K="7"), TypeError),
    ],
)
def test_invalid_parameters_rejected(kwargs, exc):
    with pytest.raises(exc):
        Trellis(**kwargs)
