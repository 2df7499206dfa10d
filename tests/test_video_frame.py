import numpy as np
import pytest

from tello_viewer.models.video_frame import CompressedPacket, DecodedFrame

from conftest import make_frame


def test_planes_split_i420_buffer():
    y = np.arange(48, dtype=np.uint8).reshape(6, 8)
    u = np.full((3, 4), 10, np.uint8)
    v = np.full((3, 4), 20, np.uint8)

    frame = DecodedFrame.from_planes(1, y, u, v)

    assert (frame.width, frame.height) == (8, 6)
    assert np.array_equal(frame.y, y)
    assert np.array_equal(frame.u, u)
    assert np.array_equal(frame.v, v)


def test_neutral_chroma_converts_to_grey():
    frame = make_frame(1, luma=128)

    bgr = frame.to_bgr()

    assert bgr.shape == (6, 8, 3)
    assert bgr.dtype == np.uint8
    assert int(bgr.max()) - int(bgr.min()) <= 2


def test_write_bgr_fills_destination_in_place():
    frame = make_frame(1, luma=200)
    dst = np.zeros((6, 8, 3), np.uint8)

    frame.write_bgr(dst)

    assert np.array_equal(dst, frame.to_bgr())


def test_write_bgr_rejects_wrong_size():
    with pytest.raises(ValueError):
        make_frame(1).write_bgr(np.zeros((4, 4, 3), np.uint8))


def test_odd_dimensions_rejected():
    with pytest.raises(ValueError):
        DecodedFrame(1, 7, 6, np.zeros((9, 7), np.uint8))


def test_packet_size():
    assert CompressedPacket(3, b"\x00\x00\x01").size == 3
