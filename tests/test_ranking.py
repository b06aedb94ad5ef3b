"""Ranking procedure tests."""

from dataclasses import replace

import pytest

from materials import InvalidInputError, get_bone_site, get_material, list_materials
from ranking import best_match, rank


@pytest.fixture(scope="module")
def femur():
    return get_bone_site('femur')


class TestRank:
    def test_ranks_whole_catalog(self, femur):
        ranked = rank(list_materials(), femur, 70)
        assert len(ranked) == 22
        assert {s.material.id for s in ranked} == set(m.id for m in list_materials())

    def test_descending(self, femur):
        overall = [s.breakdown.overall for s in rank(list_materials(), femur, 70)]
        assert overall == sorted(overall, reverse=True)

    def test_catalog_ties_keep_catalog_order(self, femur):
        catalog = list_materials()
        position = {m.id: i for i, m in enumerate(catalog)}
        ranked = rank(catalog, femur, 70)
        for a, b in zip(ranked, ranked[1:]):
            if a.breakdown.overall == b.breakdown.overall:
                assert position[a.material.id] < position[b.material.id]

    def test_stable_for_equal_scores(self, femur):
        ti = get_material('ti6al4v_eli')
        worse = replace(ti, id='worse', osseointegration=0.1)
        first = replace(ti, id='first')
        second = replace(ti, id='second')

        ranked = rank([worse, first, second], femur, 70)
        assert [s.material.id for s in ranked] == ['first', 'second', 'worse']

        ranked = rank([second, worse, first], femur, 70)
        assert [s.material.id for s in ranked] == ['second', 'first', 'worse']

    def test_breakdown_matches_material(self, femur):
        for s in rank(list_materials(), femur, 95):
            assert s.breakdown.overall >= 0
            assert s.to_dict()['material']['id'] == s.material.id

    def test_empty_catalog(self, femur):
        assert rank([], femur, 70) == []
        assert best_match([]) is None

    def test_best_match_is_first(self, femur):
        ranked = rank(list_materials(), femur, 70)
        assert best_match(ranked) is ranked[0]

    def test_rejects_invalid_weight(self, femur):
        with pytest.raises(InvalidInputError):
            rank(list_materials(), femur, 0)
