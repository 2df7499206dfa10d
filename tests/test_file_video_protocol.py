import pytest

from tello_viewer.models.errors import PacketSourceClosed
from tello_viewer.protocols.file_video_protocol import FileVideoProtocolAdapter


def test_replay_chunks_file_then_closes(tmp_path):
    capture = tmp_path / "capture.h264"
    capture.write_bytes(bytes(range(256)) * 12)  # 3072 bytes
    source = FileVideoProtocolAdapter(str(capture), chunk_size=1460, packets_per_second=0)

    source.start()
    packets = []
    with pytest.raises(PacketSourceClosed):
        while True:
            packet = source.next_packet(timeout=1.0)
            if packet is not None:
                packets.append(packet)
    source.stop()

    assert [p.seq for p in packets] == [1, 2, 3]
    assert [p.size for p in packets] == [1460, 1460, 152]
    assert b"".join(p.data for p in packets) == capture.read_bytes()
    assert not source.is_running()


def test_chunk_size_must_be_positive(tmp_path):
    with pytest.raises(ValueError):
        FileVideoProtocolAdapter(str(tmp_path / "x"), chunk_size=0)
