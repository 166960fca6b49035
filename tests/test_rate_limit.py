import pytest

from impactmarket.rate_limit import RateLimiter


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    # Overrides the no-cooldown limiter from conftest; never sweeps on its own
    return RateLimiter(cooldown=1.0, retention=60.0, clock=clock, rand=lambda: 1.0)


def test_second_hit_within_cooldown_is_rejected(limiter, clock):
    assert limiter.hit("1.2.3.4:/api/payment-info") is True
    clock.advance(0.5)
    assert limiter.hit("1.2.3.4:/api/payment-info") is False


def test_hits_spaced_by_cooldown_are_accepted(limiter, clock):
    assert limiter.hit("1.2.3.4:/api/payment-info") is True
    clock.advance(1.0)
    assert limiter.hit("1.2.3.4:/api/payment-info") is True


def test_rejected_hit_does_not_extend_cooldown(limiter, clock):
    assert limiter.hit("k") is True
    clock.advance(0.6)
    assert limiter.hit("k") is False
    clock.advance(0.4)
    assert limiter.hit("k") is True


def test_keys_are_independent(limiter):
    assert limiter.hit("1.2.3.4:/api/create-payment-intent") is True
    assert limiter.hit("1.2.3.4:/api/payment-info") is True
    assert limiter.hit("5.6.7.8:/api/create-payment-intent") is True


def test_sweep_drops_entries_past_retention(limiter, clock):
    limiter.hit("old")
    clock.advance(30)
    limiter.hit("recent")
    clock.advance(31)

    assert limiter.sweep() == 1
    assert len(limiter) == 1


def test_random_sweep_runs_on_accepted_hits(clock):
    limiter = RateLimiter(cooldown=1.0, retention=60.0, clock=clock, rand=lambda: 0.0)
    limiter.hit("old")
    clock.advance(120)

    limiter.hit("new")

    assert len(limiter) == 1


def test_clear_empties_the_map(limiter):
    limiter.hit("a")
    limiter.hit("b")
    limiter.clear()
    assert len(limiter) == 0


def test_endpoint_returns_429_within_cooldown(client, mocker, clock):
    mock_intent = mocker.Mock(id="pi_1", client_secret="secret_1")
    mocker.patch("impactmarket.routes.create_payment_intent", return_value=mock_intent)
    body = {"amount": 1000, "currency": "pln"}

    first = client.post("/api/create-payment-intent", json=body)
    second = client.post("/api/create-payment-intent", json=body)

    assert first.status_code == 200
    assert second.status_code == 429
    assert second.json() == {
        "error": "Too many requests, please try again later",
        "message": "Rate limit exceeded",
    }

    clock.advance(1.0)
    third = client.post("/api/create-payment-intent", json=body)
    assert third.status_code == 200


def test_cooldown_is_per_path(client, mocker):
    mocker.patch(
        "impactmarket.routes.create_payment_intent",
        return_value=mocker.Mock(id="pi_1", client_secret="secret_1"),
    )

    assert client.post("/api/create-payment-intent", json={"amount": 1000, "currency": "pln"}).status_code == 200
    # Different path, same client: not limited (404 comes from the handler, not the limiter)
    response = client.post(
        "/api/create-checkout-session",
        json={"paymentId": "nope", "amount": 1000, "currency": "pln"},
    )
    assert response.status_code == 404


def test_webhook_is_not_rate_limited(client, mocker):
    mocker.patch(
        "stripe.Webhook.construct_event",
        return_value={"type": "charge.refunded", "data": {"object": {"id": "ch_1"}}},
    )

    for _ in range(3):
        response = client.post("/api/stripe-webhook", content=b"{}", headers={"stripe-signature": "sig"})
        assert response.status_code == 200
