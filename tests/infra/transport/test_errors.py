import ssl

from casrelay.infra.transport.errors import TransportError, caused_by_tls


def test_caused_by_tls_walks_cause_chain():
    outer = OSError("connect failed")
    outer.__cause__ = ssl.SSLError("wrong version number")
    wrapper = ConnectionError("mapped")
    wrapper.__cause__ = outer

    assert caused_by_tls(wrapper) is True


def test_caused_by_tls_follows_implicit_context():
    try:
        try:
            raise ssl.SSLError("bad record")
        except ssl.SSLError:
            raise ConnectionError("during handling")
    except ConnectionError as exc:
        assert caused_by_tls(exc) is True


def test_caused_by_tls_false_without_ssl():
    exc = ConnectionError("refused")
    exc.__cause__ = OSError("no route")
    assert caused_by_tls(exc) is False


def test_caused_by_tls_survives_cycles():
    a = ConnectionError("a")
    b = OSError("b")
    a.__cause__ = b
    b.__cause__ = a
    assert caused_by_tls(a) is False


def test_transport_error_kind_and_repr():
    err = TransportError("tls_error", "TLS handshake failed")
    assert err.kind == "tls_error"
    assert str(err) == "TLS handshake failed"
    assert "tls_error" in repr(err)
