import pytest
from hypothesis import given
from hypothesis import strategies as st

from pixconv.jpeg_tables import (
    AC_CHROMA_BITS,
    AC_CHROMA_VALUES,
    AC_LUM_BITS,
    AC_LUM_VALUES,
    DC_CHROMA_BITS,
    DC_CHROMA_VALUES,
    DC_LUM_BITS,
    DC_LUM_VALUES,
    STD_CHROMA_QUANT,
    STD_LUM_QUANT,
    ZIGZAG,
    forward_dct,
    huffman_codes,
    quant_table,
    quantize,
    rgb_to_y,
    rgb_to_ycc,
    y_to_ycc,
)

TABLES = [
    (DC_LUM_BITS, DC_LUM_VALUES),
    (AC_LUM_BITS, AC_LUM_VALUES),
    (DC_CHROMA_BITS, DC_CHROMA_VALUES),
    (AC_CHROMA_BITS, AC_CHROMA_VALUES),
]

samples = st.lists(st.integers(-128, 127), min_size=64, max_size=64)


def test_zigzag_is_permutation():
    reordered = quantize(list(range(64)), [1] * 64)
    assert reordered == list(ZIGZAG)
    assert sorted(reordered) == list(range(64))
    assert reordered[:4] == [0, 1, 8, 16]


@pytest.mark.parametrize("bits, values", TABLES)
def test_value_tables_match_bit_counts(bits, values):
    table = huffman_codes(bits, values)
    coded = [v for v in values if table.sizes[v] > 0]
    assert len(coded) == sum(bits[1:]) == len(values)


@given(st.integers(0, 255))
def test_gray_pixel_has_neutral_chroma(v):
    assert rgb_to_ycc(bytes((v, v, v))) == bytes((v, 128, 128))


@given(st.binary(max_size=60).map(lambda b: b[: len(b) - len(b) % 3]))
def test_rgb_to_y_matches_luma_channel(data):
    assert rgb_to_y(data) == rgb_to_ycc(data)[0::3]


def test_rgb_length_must_be_multiple_of_three():
    with pytest.raises(ValueError):
        rgb_to_ycc(b"\x01\x02")
    with pytest.raises(ValueError):
        rgb_to_y(b"\x01\x02\x03\x04")


@given(st.binary(max_size=30))
def test_y_to_ycc(data):
    out = y_to_ycc(data)
    assert out[0::3] == data
    assert set(out[1::3]) <= {128}
    assert set(out[2::3]) <= {128}


def test_zero_block_dct_is_zero():
    assert forward_dct([0] * 64) == [0] * 64


@given(st.integers(-128, 127))
def test_constant_block_has_only_dc(c):
    coeffs = forward_dct([c] * 64)
    assert coeffs[1:] == [0] * 63
    assert coeffs[0] == 8 * c


def test_dct_rejects_wrong_size():
    with pytest.raises(ValueError):
        forward_dct([0] * 63)


@pytest.mark.parametrize("bits, values", TABLES)
def test_huffman_codes_are_prefix_free(bits, values):
    table = huffman_codes(bits, values)
    words = [
        format(table.codes[v], f"0{table.sizes[v]}b") for v in values
    ]
    for v in values:
        assert table.codes[v] < (1 << table.sizes[v])
    for a in words:
        for b in words:
            if a is not b:
                assert not b.startswith(a)


@pytest.mark.parametrize("bits, values", TABLES)
def test_huffman_sizes_follow_bits(bits, values):
    table = huffman_codes(bits, values)
    for length in range(1, 17):
        assert sum(1 for v in values if table.sizes[v] == length) == bits[length]


def test_standard_luminance_codes():
    dc = huffman_codes(DC_LUM_BITS, DC_LUM_VALUES)
    assert (dc.codes[0], dc.sizes[0]) == (0b00, 2)
    ac = huffman_codes(AC_LUM_BITS, AC_LUM_VALUES)
    assert (ac.codes[0x00], ac.sizes[0x00]) == (0b1010, 4)
    assert (ac.codes[0xF0], ac.sizes[0xF0]) == (0b11111111001, 11)


def test_huffman_rejects_short_values():
    with pytest.raises(ValueError):
        huffman_codes(DC_LUM_BITS, DC_LUM_VALUES[:5])


def test_quality_50_keeps_base_table():
    assert quant_table(STD_LUM_QUANT, 50) == list(STD_LUM_QUANT)
    assert quant_table(STD_CHROMA_QUANT, 50) == list(STD_CHROMA_QUANT)


def test_quality_100_gives_unit_table():
    assert quant_table(STD_LUM_QUANT, 100) == [1] * 64


@given(st.integers(1, 99))
def test_higher_quality_never_coarser(q):
    low = quant_table(STD_LUM_QUANT, q)
    high = quant_table(STD_LUM_QUANT, q + 1)
    assert all(h <= l for h, l in zip(high, low))
    assert all(1 <= x <= 255 for x in low)


@pytest.mark.parametrize("quality", [0, 101, -5])
def test_quant_table_rejects_bad_quality(quality):
    with pytest.raises(ValueError):
        quant_table(STD_LUM_QUANT, quality)


@given(samples)
def test_quantize_with_unit_table_reorders(block):
    assert quantize(block, [1] * 64) == [block[z] for z in ZIGZAG]


@given(samples)
def test_quantize_is_sign_symmetric(block):
    table = quant_table(STD_LUM_QUANT, 75)
    assert quantize([-x for x in block], table) == [-x for x in quantize(block, table)]


def test_quantize_rounds_to_nearest():
    block = [0] * 64
    block[0] = 8
    block[1] = 7
    out = quantize(block, [16] * 64)
    assert out[0] == 1
    assert out[1] == 0


def test_quantize_rejects_wrong_size():
    with pytest.raises(ValueError):
        quantize([0] * 64, [1] * 10)