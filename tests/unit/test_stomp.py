"""Unit tests for the STOMP frame codec."""

import pytest
import pytest_check as check

from docchat.exceptions import ProtocolError
from docchat.transport.stomp import FrameParser, StompFrame, encode_frame, negotiate_heartbeat


class TestEncodeFrame:
    """Tests for frame serialization."""

    def test_encode_send_frame(self) -> None:
        """Body frames carry a byte-accurate content-length."""
        frame = StompFrame(command="SEND", headers={"destination": "/app/chat/message"}, body="héllo")

        encoded = encode_frame(frame)

        assert encoded == "SEND\ndestination:/app/chat/message\ncontent-length:6\n\nhéllo\x00"

    def test_encode_frame_without_body(self) -> None:
        """Empty bodies get no content-length."""
        encoded = encode_frame(StompFrame(command="DISCONNECT"))

        assert encoded == "DISCONNECT\n\n\x00"

    def test_encode_escapes_header_values(self) -> None:
        """Colons and newlines in headers are escaped."""
        frame = StompFrame(command="SEND", headers={"destination": "a:b\nc"})

        assert "destination:a\\cb\\nc\n" in encode_frame(frame)

    def test_connect_headers_are_not_escaped(self) -> None:
        """CONNECT headers are written verbatim."""
        frame = StompFrame(command="CONNECT", headers={"host": "a:b"})

        assert "host:a:b\n" in encode_frame(frame)


class TestFrameParser:
    """Tests for incremental parsing."""

    def test_parse_single_frame(self) -> None:
        """A complete frame is parsed with headers and body."""
        parser = FrameParser()

        frames = parser.feed("MESSAGE\nsubscription:sub-0\ndestination:/topic/chat/s1\n\n{}\x00")

        assert len(frames) == 1
        check.equal(frames[0].command, "MESSAGE")
        check.equal(frames[0].headers["subscription"], "sub-0")
        check.equal(frames[0].body, "{}")

    def test_parse_partial_frame_across_feeds(self) -> None:
        """A frame split over several chunks is returned once complete."""
        parser = FrameParser()
        raw = encode_frame(StompFrame(command="MESSAGE", headers={"subscription": "sub-0"}, body="hello"))

        assert parser.feed(raw[:10]) == []
        assert parser.feed(raw[10:-1]) == []
        frames = parser.feed(raw[-1:])

        assert [f.body for f in frames] == ["hello"]

    def test_parse_concatenated_frames(self) -> None:
        """Several frames in one chunk come out in order."""
        parser = FrameParser()
        raw = encode_frame(StompFrame(command="MESSAGE", body="one")) + encode_frame(
            StompFrame(command="MESSAGE", body="two")
        )

        frames = parser.feed(raw)

        assert [f.body for f in frames] == ["one", "two"]

    def test_heartbeats_are_skipped(self) -> None:
        """Bare EOLs between frames are counted, not returned."""
        parser = FrameParser()

        frames = parser.feed("\n\r\nRECEIPT\nreceipt-id:1\n\n\x00\n")

        assert [f.command for f in frames] == ["RECEIPT"]
        assert parser.heartbeats == 2

    def test_content_length_allows_nul_in_body(self) -> None:
        """content-length bodies may contain NUL bytes."""
        parser = FrameParser()

        frames = parser.feed("MESSAGE\ncontent-length:3\n\na\x00b\x00")

        assert frames[0].body == "a\x00b"

    def test_crlf_line_endings(self) -> None:
        """CRLF frames are accepted."""
        parser = FrameParser()

        frames = parser.feed("CONNECTED\r\nversion:1.2\r\n\r\n\x00")

        assert frames[0].headers == {"version": "1.2"}

    def test_repeated_header_keeps_first(self) -> None:
        """Only the first occurrence of a header counts."""
        parser = FrameParser()

        frames = parser.feed("MESSAGE\nfoo:first\nfoo:second\n\n\x00")

        assert frames[0].headers["foo"] == "first"

    def test_header_values_are_unescaped(self) -> None:
        """Escaped header values are decoded."""
        parser = FrameParser()

        frames = parser.feed("ERROR\nmessage:bad\\cvalue\\nhere\n\n\x00")

        assert frames[0].headers["message"] == "bad:value\nhere"

    def test_invalid_escape_raises(self) -> None:
        """Undefined escapes are protocol errors."""
        with pytest.raises(ProtocolError, match="Invalid header escape"):
            FrameParser().feed("MESSAGE\nfoo:bad\\t\n\n\x00")

    def test_malformed_header_raises(self) -> None:
        """Header lines need a colon."""
        with pytest.raises(ProtocolError, match="Malformed header"):
            FrameParser().feed("MESSAGE\nnocolon\n\n\x00")

    def test_content_length_without_nul_raises(self) -> None:
        """A body longer than content-length is rejected."""
        with pytest.raises(ProtocolError, match="NUL-terminated"):
            FrameParser().feed("MESSAGE\ncontent-length:1\n\nab\x00")

    def test_invalid_utf8_headers_raise(self) -> None:
        """Undecodable header bytes are protocol errors."""
        with pytest.raises(ProtocolError, match="Invalid UTF-8 in frame headers"):
            FrameParser().feed(b"CONNECTED\nversion:1.2\xff\n\n\x00")

    def test_invalid_utf8_body_raises(self) -> None:
        """Undecodable body bytes are protocol errors."""
        with pytest.raises(ProtocolError, match="Invalid UTF-8 in frame body"):
            FrameParser().feed(b"MESSAGE\ncontent-length:2\n\n\xc3\x28\x00")

    def test_negative_content_length_raises(self) -> None:
        """content-length cannot be negative."""
        with pytest.raises(ProtocolError, match="Negative content-length"):
            FrameParser().feed("MESSAGE\ncontent-length:-5\n\nabc\x00")

    def test_zero_content_length_is_empty_body(self) -> None:
        """content-length 0 is the lower edge."""
        frames = FrameParser().feed("MESSAGE\ncontent-length:0\n\n\x00")

        assert frames[0].body == ""

    def test_reset_drops_partial_frame(self) -> None:
        """Reset discards buffered data."""
        parser = FrameParser()
        parser.feed("MESSAGE\nsubscription:sub-0\n")

        parser.reset()

        assert parser.feed("RECEIPT\n\n\x00")[0].command == "RECEIPT"


class TestNegotiateHeartbeat:
    """Tests for heart-beat negotiation."""

    def test_each_direction_uses_the_larger_interval(self) -> None:
        """Both sides enabled: max of the two."""
        assert negotiate_heartbeat(4, 4, "10000,2000") == (4.0, 10.0)

    def test_zero_disables_a_direction(self) -> None:
        """Either side asking for zero disables that direction."""
        check.equal(negotiate_heartbeat(4, 0, "10000,10000"), (10.0, 0.0))
        check.equal(negotiate_heartbeat(4, 4, "0,0"), (0.0, 0.0))

    def test_missing_header_disables_heartbeats(self) -> None:
        """Servers that omit the header get no heart-beats."""
        assert negotiate_heartbeat(4, 4, None) == (0.0, 0.0)

    def test_invalid_header_raises(self) -> None:
        """Garbage heart-beat headers are protocol errors."""
        with pytest.raises(ProtocolError, match="Invalid heart-beat"):
            negotiate_heartbeat(4, 4, "fast")
