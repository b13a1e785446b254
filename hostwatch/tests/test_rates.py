from hostwatch.app.services.rates import compute_network_rates


def test_rates_are_derived_from_adjacent_samples(make_sample):
    samples = [
        make_sample(timestamp=100, network_sent_bytes_cumulative=1_000, network_recv_bytes_cumulative=2_000),
        make_sample(timestamp=102, network_sent_bytes_cumulative=3_000, network_recv_bytes_cumulative=2_500),
        make_sample(timestamp=112, network_sent_bytes_cumulative=3_500, network_recv_bytes_cumulative=4_500),
    ]

    points = compute_network_rates(samples)

    assert [(p.timestamp, p.sent_bytes_per_sec, p.recv_bytes_per_sec) for p in points] == [
        (102, 1_000.0, 250.0),
        (112, 50.0, 200.0),
    ]


def test_counter_reset_is_clamped_to_zero(make_sample):
    samples = [
        make_sample(timestamp=100, network_sent_bytes_cumulative=10_000, network_recv_bytes_cumulative=10_000),
        make_sample(timestamp=103, network_sent_bytes_cumulative=10, network_recv_bytes_cumulative=10_300),
    ]

    (point,) = compute_network_rates(samples)

    assert point.sent_bytes_per_sec == 0.0
    assert point.recv_bytes_per_sec == 100.0


def test_pairs_without_elapsed_time_are_skipped(make_sample):
    samples = [make_sample(timestamp=100), make_sample(timestamp=100)]

    assert compute_network_rates(samples) == []
    assert compute_network_rates([]) == []
    assert compute_network_rates(samples[:1]) == []
