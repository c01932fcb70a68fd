# -*- coding: utf-8 -*-
"""
Test suite for netmanip.

Run with: pytest tests/ -v
"""

import matplotlib
matplotlib.use("Agg")

import numpy as np
import pytest


PATH4 = np.array([
    [0, 1, 0, 0],
    [1, 0, 1, 0],
    [0, 1, 0, 1],
    [0, 0, 1, 0],
], dtype=float)


def row_sum_total(network, args):
    return float(network.adjacency.sum(axis=1).sum())


def shift_edge(network, args):
    """
    Two derived networks per subject.

    Label '10' lowers edge (0, 1) by 2 + 0.1·w23 on both sides, a
    systematic decrease.  Label '5' moves it by w23 − 1, which the
    sample below makes symmetric around zero.
    """
    A = network.adjacency
    w = A[2, 3]
    derived = {}
    for label, delta in (("5", w - 1.0), ("10", -(2.0 + 0.1 * w))):
        B = A.copy()
        B[0, 1] += delta
        B[1, 0] += delta
        derived[label] = network.with_adjacency(B)
    return derived


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture(scope="module")
def path_network():
    from netmanip.core import make_network
    return make_network(
        PATH4, name="path",
        node_variables={"community": ["a", "a", "b", "b"]},
    )


@pytest.fixture(scope="module")
def sample20():
    """20 subjects; w23 = 1 ± e_i mirrored across the two halves."""
    from netmanip.core import make_sample
    rng = np.random.default_rng(42)
    N = 8
    matrices = []
    for i in range(20):
        A = np.zeros((N, N))
        for a in range(N):
            for b in range(a + 1, N):
                A[a, b] = A[b, a] = rng.exponential(1.0)
        e = 0.1 * (i % 10 + 1)
        w = 1.0 + e if i < 10 else 1.0 - e
        A[2, 3] = A[3, 2] = w
        matrices.append(A)
    return make_sample(
        matrices,
        node_variables={"community": [1, 1, 1, 1, 2, 2, 2, 2]},
        sample_variables={
            "group": ["a"] * 10 + ["b"] * 10,
            "age": np.arange(20, 40),
        },
    )


@pytest.fixture(scope="module")
def sample_stats(sample20):
    from netmanip.manipulation import apply_manipulation
    from netmanip.statistic import apply_statistic
    msets = apply_manipulation(sample20, shift_edge)
    return apply_statistic(msets, row_sum_total)


@pytest.fixture
def ragged_stats():
    """Three subjects with different label sets."""
    from netmanip.core import StatisticSet, SampleStatisticSet
    return SampleStatisticSet(
        sets=[
            StatisticSet(1.0, {"b": 2.0, "a": 3.0}, name="s1"),
            StatisticSet(2.0, {"a": 2.5, "c": 4.0}, name="s2"),
            StatisticSet(1.5, {"a": 2.0, "b": 1.0}, name="s3"),
        ],
        sample_variables={"group": ["x", "y", "x"]},
    )


# =============================================================================
# CORE
# =============================================================================

class TestCore:
    def test_network_dimensions(self, path_network):
        assert path_network.n_nodes == 4
        for values in path_network.node_variables.values():
            assert len(values) == path_network.n_nodes

    def test_adjacency_read_only(self, path_network):
        with pytest.raises(ValueError):
            path_network.adjacency[0, 0] = 5.0

    def test_input_is_copied(self):
        from netmanip.core import make_network
        A = PATH4.copy()
        net = make_network(A)
        A[0, 1] = 99
        assert net.adjacency[0, 1] == 1

    def test_node_variable_length_mismatch(self):
        from netmanip.core import make_network
        from netmanip.errors import DimensionMismatch
        with pytest.raises(DimensionMismatch) as exc:
            make_network(PATH4, node_variables={"community": [1, 2, 3]})
        assert exc.value.name == "community"

    def test_non_square(self):
        from netmanip.core import make_network
        from netmanip.errors import DimensionMismatch
        with pytest.raises(DimensionMismatch):
            make_network(np.zeros((3, 4)))

    def test_missing_node_variable(self, path_network):
        from netmanip.errors import MissingVariableError
        with pytest.raises(MissingVariableError) as exc:
            path_network.node_variable("degree")
        assert exc.value.name == "degree"
        assert isinstance(exc.value, KeyError)

    def test_subset_slices_node_variables(self, path_network):
        sub = path_network.subset([0, 2])
        assert sub.n_nodes == 2
        assert list(sub.node_variable("community")) == ["a", "b"]

    def test_sample_broadcasts_node_variables(self, sample20):
        assert sample20.n_subjects == 20
        assert sample20.n_nodes == 8
        for net in sample20:
            assert list(net.node_variable("community")) == [1, 1, 1, 1, 2, 2, 2, 2]

    def test_sample_default_ids(self, sample20):
        assert sample20.subject_ids[0] == "subject1"
        assert sample20.subject_ids[-1] == "subject20"

    def test_sample_node_count_mismatch(self):
        from netmanip.core import make_sample
        from netmanip.errors import DimensionMismatch
        with pytest.raises(DimensionMismatch):
            make_sample([np.zeros((3, 3)), np.zeros((4, 4))])

    def test_sample_variable_length(self):
        from netmanip.core import make_sample
        from netmanip.errors import DimensionMismatch
        with pytest.raises(DimensionMismatch) as exc:
            make_sample(
                [PATH4, PATH4],
                sample_variables={"group": ["a", "b", "c"]},
            )
        assert exc.value.name == "group"

    def test_missing_sample_variable(self, sample20):
        from netmanip.errors import MissingVariableError
        with pytest.raises(MissingVariableError):
            sample20.sample_variable("diagnosis")

    def test_duplicate_subject_ids(self):
        from netmanip.core import make_sample
        with pytest.raises(ValueError):
            make_sample([PATH4, PATH4], subject_ids=["s", "s"])

    def test_statistic_sample_duplicate_ids(self):
        from netmanip.core import StatisticSet, SampleStatisticSet
        with pytest.raises(ValueError):
            SampleStatisticSet(
                sets=[StatisticSet(1.0, {"a": 2.0}, name="s"),
                      StatisticSet(1.5, {"a": 2.5}, name="s")],
            )

    def test_load_network(self, tmp_path):
        from netmanip.core import load_network, load_sample
        p1 = tmp_path / "sub01.csv"
        p2 = tmp_path / "sub02.csv"
        np.savetxt(p1, PATH4, delimiter=",")
        np.savetxt(p2, PATH4 * 2, delimiter=",")

        net = load_network(p1, delimiter=",")
        assert net.name == "sub01"
        np.testing.assert_array_equal(net.adjacency, PATH4)

        sample = load_sample([p1, p2], delimiter=",",
                             sample_variables={"group": ["a", "b"]})
        assert sample.subject_ids == ["sub01", "sub02"]
        np.testing.assert_array_equal(sample[1].adjacency, PATH4 * 2)


# =============================================================================
# REGISTRY
# =============================================================================

class TestRegistry:
    def test_defaults(self):
        from netmanip.registry import default_manipulations, default_statistics
        from netmanip.manipulation import remove_each_node
        manips = default_manipulations()
        assert manips["remove_each_node"] is remove_each_node
        assert "global_efficiency" in default_statistics()

    def test_fresh_instances(self):
        from netmanip.registry import default_statistics
        a = default_statistics()
        a.register("custom", row_sum_total)
        assert "custom" not in default_statistics()

    def test_decorator_and_duplicates(self):
        from netmanip.registry import ProcedureRegistry
        reg = ProcedureRegistry("statistic")

        @reg.register("edges")
        def edges(network, args):
            return float((network.adjacency > 0).sum() / 2)

        assert reg.get("edges") is edges
        with pytest.raises(ValueError):
            reg.register("edges", edges)

    def test_unknown(self):
        from netmanip.registry import ProcedureRegistry
        from netmanip.errors import UnknownProcedureError
        reg = ProcedureRegistry("manipulation")
        with pytest.raises(UnknownProcedureError):
            reg.get("nope")
        with pytest.raises(KeyError):
            reg["nope"]


# =============================================================================
# MANIPULATION
# =============================================================================

class TestManipulation:
    def test_remove_each_node_labels(self, path_network):
        from netmanip.manipulation import apply_manipulation, remove_each_node
        mset = apply_manipulation(path_network, remove_each_node)
        assert mset.labels == ["1", "2", "3", "4"]
        assert mset.original is path_network
        for label in mset.labels:
            assert mset[label].n_nodes == 3
            assert len(mset[label].node_variable("community")) == 3

    def test_labels_match_procedure_keys(self, path_network):
        from netmanip.manipulation import apply_manipulation

        def two(network, args):
            return {"z": network, "y": network.subset([0, 1])}

        mset = apply_manipulation(path_network, two)
        assert mset.labels == ["z", "y"]

    def test_args_reach_procedure(self, path_network):
        from netmanip.manipulation import apply_manipulation, remove_each_node
        mset = apply_manipulation(path_network, remove_each_node, {"nodes": [2]})
        assert mset.labels == ["2"]

    def test_remove_node_groups(self, path_network):
        from netmanip.manipulation import apply_manipulation, remove_node_groups
        mset = apply_manipulation(
            path_network, remove_node_groups, {"variable": "community"},
        )
        assert mset.labels == ["a", "b"]
        assert list(mset["a"].node_variable("community")) == ["b", "b"]

    def test_remove_node_groups_missing_variable(self, path_network):
        from netmanip.manipulation import apply_manipulation, remove_node_groups
        from netmanip.errors import MissingVariableError
        with pytest.raises(MissingVariableError):
            apply_manipulation(path_network, remove_node_groups,
                               {"variable": "module"})

    def test_remove_node_groups_whole_network(self):
        from netmanip.core import make_network
        from netmanip.manipulation import apply_manipulation, remove_node_groups
        from netmanip.errors import ContractViolation
        K3 = np.ones((3, 3)) - np.eye(3)
        net = make_network(K3, node_variables={"c": [1, 1, 1]})
        with pytest.raises(ContractViolation) as exc:
            apply_manipulation(net, remove_node_groups, {"variable": "c"})
        assert exc.value.label == "1"

    def test_threshold_proportional(self):
        from netmanip.core import make_network
        from netmanip.manipulation import apply_manipulation, threshold_proportional
        W = np.zeros((4, 4))
        W[0, 1] = W[1, 0] = 1.0
        W[1, 2] = W[2, 1] = 3.0
        W[2, 3] = W[3, 2] = 2.0
        net = make_network(W)
        mset = apply_manipulation(
            net, threshold_proportional, {"proportions": [1 / 3, 1.0]},
        )
        assert mset.labels == ["0.333333", "1"]
        strongest = mset["0.333333"].adjacency
        assert (np.triu(strongest) > 0).sum() == 1
        assert strongest[1, 2] == W[1, 2]
        np.testing.assert_array_equal(mset["1"].adjacency, W)

    def test_threshold_repeated_label(self):
        from netmanip.core import make_network
        from netmanip.manipulation import apply_manipulation, threshold_proportional
        from netmanip.errors import ContractViolation
        with pytest.raises(ContractViolation) as exc:
            apply_manipulation(make_network(PATH4), threshold_proportional,
                               {"proportions": [0.5, 0.5000001]})
        assert isinstance(exc.value.__cause__, ValueError)

    def test_remove_each_node_repeated_position(self, path_network):
        from netmanip.manipulation import apply_manipulation, remove_each_node
        from netmanip.errors import ContractViolation
        with pytest.raises(ContractViolation):
            apply_manipulation(path_network, remove_each_node, {"nodes": [2, 2]})

    def test_random_edge_removal(self):
        from netmanip.core import make_network
        from netmanip.manipulation import apply_manipulation, random_edge_removal
        A = np.ones((4, 4)) - np.eye(4)
        mset = apply_manipulation(
            make_network(A), random_edge_removal,
            {"fraction": 0.5, "n_repeats": 3, "seed": 1},
        )
        assert mset.labels == ["rep1", "rep2", "rep3"]
        for label in mset.labels:
            adj = mset[label].adjacency
            assert np.allclose(adj, adj.T)
            assert (np.triu(adj, k=1) > 0).sum() == 3

    def test_sample_order_and_independence(self, sample20):
        from netmanip.manipulation import apply_manipulation
        seen = []

        def record(network, args):
            seen.append(network.name)
            return {"same": network}

        msets = apply_manipulation(sample20, record)
        assert seen == sample20.subject_ids
        assert [m.original.name for m in msets.sets] == sample20.subject_ids
        assert msets.labels == ["same"]

    @pytest.mark.parametrize("bad", [
        lambda net, args: [net],
        lambda net, args: {},
        lambda net, args: {"a": np.eye(4)},
        lambda net, args: {1: net},
        lambda net, args: {"original": net},
    ])
    def test_contract_violations(self, path_network, bad):
        from netmanip.manipulation import apply_manipulation
        from netmanip.errors import ContractViolation
        with pytest.raises(ContractViolation):
            apply_manipulation(path_network, bad)

    def test_broken_node_variable(self, path_network):
        from netmanip.manipulation import apply_manipulation
        from netmanip.errors import ContractViolation, DimensionMismatch

        def corrupt(network, args):
            derived = network.subset([0, 1, 2])
            derived.node_variables["community"] = np.array(["a"] * 4)
            return {"bad": derived}

        with pytest.raises(ContractViolation) as exc:
            apply_manipulation(path_network, corrupt)
        assert exc.value.label == "bad"
        assert isinstance(exc.value.__cause__, DimensionMismatch)

    def test_procedure_error_wrapped(self, path_network):
        from netmanip.manipulation import apply_manipulation, remove_each_node
        from netmanip.errors import ContractViolation
        with pytest.raises(ContractViolation) as exc:
            apply_manipulation(path_network, remove_each_node, {"nodes": [9]})
        assert isinstance(exc.value.__cause__, ValueError)

    def test_not_callable(self, path_network):
        from netmanip.manipulation import apply_manipulation
        with pytest.raises(TypeError):
            apply_manipulation(path_network, "remove_each_node")


# =============================================================================
# STATISTIC
# =============================================================================

class TestStatistic:
    def test_scenario_node_removal(self, path_network):
        from netmanip.manipulation import apply_manipulation, remove_each_node
        from netmanip.statistic import apply_statistic
        mset = apply_manipulation(path_network, remove_each_node)
        sset = apply_statistic(mset, row_sum_total)
        assert sset.original == 6.0
        assert sset.labels == ["1", "2", "3", "4"]
        # end nodes carry one edge, inner nodes two
        assert sset.values == {"1": 4.0, "2": 2.0, "3": 2.0, "4": 4.0}

    def test_original_equals_direct_call(self, path_network):
        from netmanip.manipulation import apply_manipulation, remove_each_node
        from netmanip.statistic import apply_statistic
        from netmanip.graph_analysis import global_efficiency
        mset = apply_manipulation(path_network, remove_each_node)
        sset = apply_statistic(mset, global_efficiency)
        assert sset.original == global_efficiency(path_network, {})
        assert sset["2"] == global_efficiency(mset["2"], {})

    def test_sample_statistics(self, sample20, sample_stats):
        assert sample_stats.n_subjects == 20
        assert sample_stats.subject_ids == sample20.subject_ids
        assert sample_stats.labels == ["5", "10"]
        np.testing.assert_array_equal(
            sample_stats.sample_variable("age"), np.arange(20, 40),
        )
        first = sample_stats[0]
        assert first.original == row_sum_total(sample20[0], {})

    @pytest.mark.parametrize("bad", [
        lambda net, args: "abc",
        lambda net, args: {"value": 1.0},
        lambda net, args: float("nan"),
        lambda net, args: np.inf,
        lambda net, args: True,
        lambda net, args: None,
    ])
    def test_non_numeric(self, path_network, bad):
        from netmanip.manipulation import apply_manipulation, remove_each_node
        from netmanip.statistic import apply_statistic
        from netmanip.errors import ContractViolation
        mset = apply_manipulation(path_network, remove_each_node)
        with pytest.raises(ContractViolation):
            apply_statistic(mset, bad)

    def test_raising_statistic(self, path_network):
        from netmanip.manipulation import apply_manipulation, remove_each_node
        from netmanip.statistic import apply_statistic
        from netmanip.errors import ContractViolation

        def fails_on_three_nodes(network, args):
            if network.n_nodes == 3:
                raise RuntimeError("boom")
            return 1.0

        mset = apply_manipulation(path_network, remove_each_node)
        with pytest.raises(ContractViolation) as exc:
            apply_statistic(mset, fails_on_three_nodes)
        assert exc.value.label == "1"
        assert isinstance(exc.value.__cause__, RuntimeError)

    def test_numpy_scalars_accepted(self, path_network):
        from netmanip.manipulation import apply_manipulation, remove_each_node
        from netmanip.statistic import apply_statistic
        mset = apply_manipulation(path_network, remove_each_node)
        s1 = apply_statistic(mset, lambda net, args: np.float32(net.n_nodes))
        s2 = apply_statistic(mset, lambda net, args: np.array(net.n_nodes))
        assert s1.original == 4.0 and s2["1"] == 3.0
        assert isinstance(s2.original, float)

    def test_sample_var_resolution(self, sample20):
        from netmanip.core import sample_var
        from netmanip.manipulation import apply_manipulation
        from netmanip.statistic import apply_statistic
        msets = apply_manipulation(sample20, lambda net, args: {"x": net})
        sstats = apply_statistic(
            msets, lambda net, args: float(args["age"]),
            {"age": sample_var("age")},
        )
        assert [s.original for s in sstats.sets] == list(range(20, 40))

    def test_sample_var_without_sample(self, path_network):
        from netmanip.core import sample_var
        from netmanip.manipulation import apply_manipulation, remove_each_node
        from netmanip.statistic import apply_statistic
        from netmanip.errors import MissingVariableError
        mset = apply_manipulation(path_network, remove_each_node)
        with pytest.raises(MissingVariableError):
            apply_statistic(mset, row_sum_total, {"age": sample_var("age")})

    def test_compute_statistics_matches_two_step(self, sample20, sample_stats):
        from netmanip.statistic import compute_statistics
        streamed = compute_statistics(sample20, shift_edge, row_sum_total)
        for a, b in zip(streamed.sets, sample_stats.sets):
            assert a.original == b.original
            assert a.values == b.values

    def test_wrong_entity(self, path_network):
        from netmanip.statistic import apply_statistic
        with pytest.raises(TypeError):
            apply_statistic(path_network, row_sum_total)


# =============================================================================
# GRAPH ANALYSIS
# =============================================================================

class TestGraphAnalysis:
    def test_path_measures(self, path_network):
        from netmanip import graph_analysis as ga
        assert ga.total_weight(path_network, {}) == 6.0
        assert ga.density(path_network, {}) == pytest.approx(0.5)
        assert ga.mean_strength(path_network, {}) == pytest.approx(1.5)
        assert ga.characteristic_path_length(path_network, {}) == pytest.approx(10 / 6)

    def test_complete_graph_efficiency(self):
        from netmanip.core import make_network
        from netmanip.graph_analysis import global_efficiency
        K4 = make_network(np.ones((4, 4)) - np.eye(4))
        assert global_efficiency(K4, {}) == pytest.approx(1.0)

    def test_triangle_clustering(self):
        from netmanip.core import make_network
        from netmanip.graph_analysis import weighted_clustering
        tri = make_network(np.ones((3, 3)) - np.eye(3))
        assert weighted_clustering(tri, {}) == pytest.approx(1.0)

    def test_modularity(self):
        from netmanip.core import make_network
        from netmanip.graph_analysis import modularity
        block = np.ones((3, 3)) - np.eye(3)
        A = np.zeros((6, 6))
        A[:3, :3] = block
        A[3:, 3:] = block
        net = make_network(A, node_variables={"community": [0, 0, 0, 1, 1, 1]})
        assert modularity(net, {}) == pytest.approx(0.5)
        mixed = make_network(A, node_variables={"m": [0, 1, 0, 1, 0, 1]})
        assert modularity(mixed, {"variable": "m"}) < 0.5

    def test_disconnected_path_length(self):
        from netmanip.core import make_network
        from netmanip.manipulation import apply_manipulation
        from netmanip.statistic import apply_statistic
        from netmanip.graph_analysis import characteristic_path_length
        from netmanip.errors import ContractViolation
        net = make_network(np.zeros((3, 3)))
        mset = apply_manipulation(net, lambda n, a: {"same": n})
        with pytest.raises(ContractViolation):
            apply_statistic(mset, characteristic_path_length)


# =============================================================================
# INFERENCE
# =============================================================================

class TestInference:
    def test_diff_test_detects_systematic_change(self, sample_stats):
        from netmanip.inference import diff_test
        res = diff_test(sample_stats, verbose=False)
        assert res["label"] == ["5", "10"]
        i5, i10 = 0, 1
        assert res["p_value"][i10] < 0.05
        assert res["statistic"][i10] < 0
        assert res["p_value"][i5] > 0.05
        assert res["df"][i10] == 19
        assert list(res["n"]) == [20, 20]
        assert res["estimate"][i5] == pytest.approx(0.0, abs=1e-9)

    def test_diff_test_rank(self, sample_stats):
        from netmanip.inference import diff_test, InferenceConfig
        res = diff_test(sample_stats, InferenceConfig(method="rank"),
                        verbose=False)
        assert res["method"] == "rank"
        assert res["p_value"][1] < 0.05
        assert np.isnan(res["df"]).all()

    def test_group_diff_test(self, sample_stats):
        from netmanip.inference import group_diff_test
        res = group_diff_test(sample_stats, "group", verbose=False)
        assert res["groups"] == ("a", "b")
        assert list(res["n1"]) == [10, 10]
        assert list(res["n2"]) == [10, 10]
        assert res["df"][0] == 18
        # group a gets +e_i on label 5, group b gets -e_i
        assert res["estimate"][0] > 0
        assert (res["p_value"] < 0.05).all()

    def test_group_test_columns(self, sample_stats):
        from netmanip.inference import group_test, InferenceConfig
        res = group_test(sample_stats, "group",
                         InferenceConfig(equal_var=False), verbose=False)
        assert res["test"] == "group"
        assert set(res) >= {"label", "statistic", "df", "p_value",
                            "p_adjusted", "significant", "n1", "n2"}
        assert np.all(np.isfinite(res["df"]))
        assert np.all(res["df"] <= 18)

    def test_group_test_rank(self, sample_stats):
        from netmanip.inference import group_test, InferenceConfig
        res = group_test(sample_stats, "group",
                         InferenceConfig(method="rank"), verbose=False)
        assert np.all((res["p_value"] >= 0) & (res["p_value"] <= 1))

    def test_single_group_value(self, sample20):
        from netmanip.core import make_sample
        from netmanip.manipulation import apply_manipulation
        from netmanip.statistic import apply_statistic
        from netmanip.inference import group_test
        from netmanip.errors import GroupConfigurationError
        sample = make_sample(
            sample20.networks,
            sample_variables={"group": ["a"] * 20},
        )
        sstats = apply_statistic(apply_manipulation(sample, shift_edge),
                                 row_sum_total)
        with pytest.raises(GroupConfigurationError) as exc:
            group_test(sstats, "group", verbose=False)
        assert exc.value.name == "group"

    def test_three_group_values(self, ragged_stats):
        from netmanip.core import SampleStatisticSet
        from netmanip.inference import group_diff_test
        from netmanip.errors import GroupConfigurationError
        three = SampleStatisticSet(
            sets=ragged_stats.sets,
            sample_variables={"group": ["x", "y", "z"]},
        )
        with pytest.raises(GroupConfigurationError):
            group_diff_test(three, "group", verbose=False)

    def test_missing_grouping_variable(self, sample_stats):
        from netmanip.inference import group_test
        from netmanip.errors import MissingVariableError
        with pytest.raises(MissingVariableError):
            group_test(sample_stats, "sex", verbose=False)

    def test_insufficient_data(self, ragged_stats):
        from netmanip.inference import diff_test
        from netmanip.errors import InsufficientDataError
        with pytest.raises(InsufficientDataError) as exc:
            diff_test(ragged_stats, verbose=False)
        assert exc.value.label == "c"

    def test_insufficient_group(self, ragged_stats):
        from netmanip.inference import group_test
        from netmanip.errors import InsufficientDataError
        # group y has a single subject
        with pytest.raises(InsufficientDataError):
            group_test(ragged_stats, "group", verbose=False)

    def test_label_order_first_appearance(self, ragged_stats):
        assert ragged_stats.labels == ["b", "a", "c"]

    def test_nan_excluded_pairwise(self):
        from netmanip.core import StatisticSet, SampleStatisticSet
        from netmanip.inference import diff_test
        sstats = SampleStatisticSet(sets=[
            StatisticSet(0.0, {"a": 1.0}),
            StatisticSet(0.0, {"a": 2.0}),
            StatisticSet(0.0, {"a": np.nan}),
            StatisticSet(0.0, {"a": 3.5}),
        ])
        res = diff_test(sstats, verbose=False)
        assert res["n"][0] == 3
        assert res["estimate"][0] == pytest.approx(6.5 / 3)

    def test_require_common_labels(self, ragged_stats):
        from netmanip.inference import diff_test, InferenceConfig
        from netmanip.errors import ContractViolation
        with pytest.raises(ContractViolation) as exc:
            diff_test(ragged_stats, InferenceConfig(require_common_labels=True),
                      verbose=False)
        assert exc.value.label == "c"

    def test_label_overlap(self, ragged_stats):
        from netmanip.inference import label_overlap
        ov = label_overlap(ragged_stats)
        assert ov["label"] == ["b", "a", "c"]
        assert list(ov["n_subjects"]) == [2, 3, 1]
        assert ov["missing"][2] == ["s1", "s3"]

    def test_config_validation(self):
        from netmanip.inference import InferenceConfig
        with pytest.raises(ValueError):
            InferenceConfig(method="bayes")
        with pytest.raises(ValueError):
            InferenceConfig(correction="holm")

    def test_adjust_p_values(self):
        from netmanip.inference import adjust_p_values
        p = np.array([0.01, 0.04, 0.03, 0.5])
        np.testing.assert_allclose(
            adjust_p_values(p, "bonferroni"), [0.04, 0.16, 0.12, 1.0],
        )
        np.testing.assert_allclose(
            adjust_p_values(p, "fdr"), [0.04, 0.16 / 3, 0.16 / 3, 0.5],
        )
        np.testing.assert_array_equal(adjust_p_values(p, "none"), p)
        with_nan = adjust_p_values(np.array([0.01, np.nan, 0.02]), "bonferroni")
        assert np.isnan(with_nan[1])
        np.testing.assert_allclose(with_nan[[0, 2]], [0.02, 0.04])

    def test_correction_in_result(self, sample_stats):
        from netmanip.inference import diff_test, InferenceConfig
        raw = diff_test(sample_stats, verbose=False)
        bonf = diff_test(sample_stats, InferenceConfig(correction="bonferroni"),
                         verbose=False)
        np.testing.assert_array_equal(raw["p_value"], bonf["p_value"])
        np.testing.assert_allclose(
            bonf["p_adjusted"], np.minimum(raw["p_value"] * 2, 1.0),
        )
        assert bonf["correction"] == "bonferroni"

    def test_fdr_in_result(self, sample_stats):
        from netmanip.inference import diff_test, adjust_p_values, InferenceConfig
        res = diff_test(sample_stats, InferenceConfig(correction="fdr"),
                        verbose=False)
        np.testing.assert_allclose(
            res["p_adjusted"], adjust_p_values(res["p_value"], "fdr"),
        )
        assert list(res["significant"]) == [False, True]
        assert res["correction"] == "fdr"

    def test_rank_all_zero_differences(self):
        from netmanip.core import StatisticSet, SampleStatisticSet
        from netmanip.inference import diff_test, InferenceConfig
        sstats = SampleStatisticSet(sets=[
            StatisticSet(1.0, {"z": 1.0, "a": 2.0}),
            StatisticSet(2.0, {"z": 2.0, "a": 4.0}),
            StatisticSet(3.0, {"z": 3.0, "a": 6.0}),
            StatisticSet(4.0, {"z": 4.0, "a": 8.5}),
        ])
        res = diff_test(sstats, InferenceConfig(method="rank"), verbose=False)
        assert res["label"] == ["z", "a"]
        assert np.isnan(res["statistic"][0])
        assert np.isnan(res["p_value"][0])
        assert not res["significant"][0]
        assert 0 < res["p_value"][1] <= 1

    def test_group_diff_test_rank_fdr(self, sample_stats):
        from netmanip.inference import (
            group_diff_test, adjust_p_values, InferenceConfig,
        )
        res = group_diff_test(
            sample_stats, "group",
            InferenceConfig(method="rank", correction="fdr"), verbose=False,
        )
        assert res["method"] == "rank"
        assert res["groups"] == ("a", "b")
        assert np.isnan(res["df"]).all()
        np.testing.assert_allclose(
            res["p_adjusted"], adjust_p_values(res["p_value"], "fdr"),
        )
        # both labels separate the groups completely
        assert res["significant"].all()


# =============================================================================
# EXPORT
# =============================================================================

class TestExport:
    def test_statistic_set_rows(self, path_network):
        from netmanip.manipulation import apply_manipulation, remove_each_node
        from netmanip.statistic import apply_statistic
        from netmanip.export import to_table
        sset = apply_statistic(
            apply_manipulation(path_network, remove_each_node), row_sum_total,
        )
        rows = to_table(sset)
        assert len(rows) == len(sset.labels) + 1
        assert rows[0] == {"label": "original", "value": 6.0}
        assert rows[2] == {"label": "2", "value": 2.0}

    def test_sample_rows(self, sample_stats):
        from netmanip.export import to_table
        rows = to_table(sample_stats)
        assert len(rows) == 40
        r = rows[0]
        assert r["subject"] == "subject1"
        assert r["label"] == "5"
        assert r["difference"] == pytest.approx(r["value"] - r["original"])
        assert r["group"] == "a"
        assert r["age"] == 20

    def test_ragged_rows(self, ragged_stats):
        from netmanip.export import to_table
        rows = to_table(ragged_stats)
        assert len(rows) == sum(len(s) for s in ragged_stats.sets)

    def test_dataframe(self, sample_stats):
        from netmanip.export import to_dataframe
        df = to_dataframe(sample_stats)
        assert df.shape == (40, 7)
        assert list(df.columns[:5]) == [
            "subject", "label", "value", "original", "difference",
        ]

    def test_results_dataframe(self, sample_stats):
        from netmanip.inference import group_test
        from netmanip.export import results_to_dataframe
        res = group_test(sample_stats, "group", verbose=False)
        df = results_to_dataframe(res)
        assert list(df["label"]) == ["5", "10"]
        assert df.attrs["groups"] == ["a", "b"]
        assert df.attrs["method"] == "parametric"

    def test_export_table(self, sample_stats, tmp_path):
        from netmanip.export import export_table
        from netmanip.inference import diff_test
        out = export_table(sample_stats, tmp_path / "out" / "stats.tsv")
        with open(out) as f:
            header = f.readline().rstrip("\n").split("\t")
        assert header[:2] == ["subject", "label"]

        out = export_table(diff_test(sample_stats, verbose=False),
                           tmp_path / "diff.tsv")
        with open(out) as f:
            lines = f.read().strip().split("\n")
        assert len(lines) == 3


# =============================================================================
# VIZ
# =============================================================================

class TestViz:
    def test_plot_test_results(self, sample_stats, tmp_path):
        import matplotlib.pyplot as plt
        from netmanip.inference import group_diff_test
        from netmanip.viz import plot_test_results
        res = group_diff_test(sample_stats, "group", verbose=False)
        path = tmp_path / "tests.png"
        fig = plot_test_results(res, save_path=str(path))
        assert path.exists()
        plt.close(fig)

    def test_plot_sample_statistics(self, sample_stats):
        import matplotlib.pyplot as plt
        from netmanip.viz import plot_sample_statistics
        fig = plot_sample_statistics(sample_stats, grouping_variable="group")
        assert len(fig.axes) == 1
        plt.close(fig)


# =============================================================================
# IMPORT SMOKE TEST
# =============================================================================

class TestImports:
    def test_version(self):
        import netmanip
        assert netmanip.__version__ == "0.1.0"

    def test_all_exports(self):
        import netmanip
        for name in netmanip.__all__:
            assert hasattr(netmanip, name), f"Missing export: {name}"
