"""
Unit tests for expression-matrix construction.

Covers the 10X directory reader, the count-table reader and the
threshold/label step, using small matrices whose filtering outcome can be
worked out by hand.
"""

import gzip
from pathlib import Path

import anndata
import numpy as np
import pandas as pd
import pytest
from scipy import sparse

from cellgeo.core.expression import (
    PROVENANCE_KEY,
    ExpressionMatrix,
    count_feature_columns,
    create_expression_matrix,
    read_10x_directory,
    read_count_table,
)
from cellgeo.core.provenance import ProvenanceRecord

from tests.mock_data import (
    STANDARD_DATASET_CONFIG,
    TINY_BARCODES,
    TINY_COUNTS,
    TINY_GENES,
    generate_counts,
    write_10x_triplet,
    write_count_table,
)


@pytest.fixture
def tiny_adata() -> anndata.AnnData:
    """TINY_COUNTS as cells x genes AnnData."""
    return anndata.AnnData(
        X=sparse.csr_matrix(TINY_COUNTS.T.astype(np.float32)),
        obs=pd.DataFrame(index=TINY_BARCODES),
        var=pd.DataFrame(index=TINY_GENES),
    )


def _dense(adata: anndata.AnnData) -> np.ndarray:
    X = adata.X
    return X.toarray() if sparse.issparse(X) else np.asarray(X)


# ===============================================================================
# 10X directory reader
# ===============================================================================


@pytest.mark.unit
class TestRead10xDirectory:
    def test_standard_v3_layout(self, tmp_path):
        write_10x_triplet(
            tmp_path, TINY_COUNTS, TINY_GENES, TINY_BARCODES, compress=True
        )
        adata = read_10x_directory(tmp_path)

        assert adata.shape == (3, 4)
        assert list(adata.obs_names) == TINY_BARCODES
        assert list(adata.var["gene_ids"]) == TINY_GENES
        np.testing.assert_array_equal(_dense(adata), TINY_COUNTS.T)

    def test_uncompressed_layout(self, tmp_path):
        write_10x_triplet(
            tmp_path, TINY_COUNTS, TINY_GENES, TINY_BARCODES, compress=False
        )
        adata = read_10x_directory(tmp_path)
        np.testing.assert_array_equal(_dense(adata), TINY_COUNTS.T)

    def test_mixed_compression(self, tmp_path):
        write_10x_triplet(
            tmp_path,
            TINY_COUNTS,
            TINY_GENES,
            TINY_BARCODES,
            compress={"matrix": True, "barcodes": False, "features": True},
        )
        adata = read_10x_directory(tmp_path)
        assert list(adata.obs_names) == TINY_BARCODES
        np.testing.assert_array_equal(_dense(adata), TINY_COUNTS.T)

    def test_legacy_two_column_genes_file(self, tmp_path):
        write_10x_triplet(
            tmp_path,
            TINY_COUNTS,
            TINY_GENES,
            TINY_BARCODES,
            compress=False,
            feature_columns=2,
            features_name="genes.tsv",
        )
        adata = read_10x_directory(tmp_path)
        assert list(adata.var_names) == ["GENE0", "GENE1", "GENE2", "GENE3"]
        assert list(adata.var["gene_ids"]) == TINY_GENES

    def test_single_column_features(self, tmp_path):
        write_10x_triplet(
            tmp_path, TINY_COUNTS, TINY_GENES, TINY_BARCODES, feature_columns=1
        )
        adata = read_10x_directory(tmp_path)
        assert list(adata.var_names) == TINY_GENES
        assert set(adata.var["feature_types"]) == {"Gene Expression"}

    def test_duplicate_gene_names_made_unique(self, tmp_path):
        write_10x_triplet(
            tmp_path,
            TINY_COUNTS,
            ["a", "a", "b", "c"],
            TINY_BARCODES,
            compress=False,
            feature_columns=1,
        )
        adata = read_10x_directory(tmp_path)
        assert adata.var_names.is_unique

    def test_feature_types_kept_regardless_of_compression(self, tmp_path):
        feature_types = ["Gene Expression", "Gene Expression", "Antibody Capture", "Gene Expression"]
        for compress in (True, False):
            write_10x_triplet(
                tmp_path / str(compress),
                TINY_COUNTS,
                TINY_GENES,
                TINY_BARCODES,
                compress=compress,
                feature_types=feature_types,
            )
        gzipped = read_10x_directory(tmp_path / "True")
        plain = read_10x_directory(tmp_path / "False")

        assert gzipped.shape == plain.shape == (3, 4)
        assert list(gzipped.var["feature_types"]) == feature_types
        assert list(plain.var["feature_types"]) == feature_types
        np.testing.assert_array_equal(_dense(gzipped), _dense(plain))

    def test_incomplete_trio(self, tmp_path):
        files = write_10x_triplet(tmp_path, TINY_COUNTS, TINY_GENES, TINY_BARCODES)
        files["barcodes"].unlink()
        with pytest.raises(FileNotFoundError, match="10X trio"):
            read_10x_directory(tmp_path)

    def test_dimension_mismatch(self, tmp_path):
        write_10x_triplet(
            tmp_path,
            TINY_COUNTS,
            TINY_GENES,
            TINY_BARCODES + ["extra"],
            compress=False,
        )
        with pytest.raises(ValueError, match="Dimension mismatch"):
            read_10x_directory(tmp_path)


@pytest.mark.unit
class TestCountFeatureColumns:
    @pytest.mark.parametrize("n_columns", [1, 2, 3])
    def test_counts_columns(self, tmp_path, n_columns):
        files = write_10x_triplet(
            tmp_path, TINY_COUNTS, TINY_GENES, TINY_BARCODES, feature_columns=n_columns
        )
        assert count_feature_columns(files["features"]) == n_columns

    def test_empty_file(self, tmp_path):
        path = tmp_path / "features.tsv.gz"
        with gzip.open(path, "wt"):
            pass
        assert count_feature_columns(path) == 0


# ===============================================================================
# Count table reader
# ===============================================================================


@pytest.mark.unit
class TestReadCountTable:
    def test_genes_by_cells_csv(self, tmp_path):
        path = write_count_table(
            tmp_path / "counts.csv", TINY_COUNTS, TINY_GENES, TINY_BARCODES
        )
        adata = read_count_table(path)

        assert adata.shape == (3, 4)
        assert list(adata.obs_names) == TINY_BARCODES
        assert list(adata.var_names) == TINY_GENES
        assert sparse.issparse(adata.X)
        np.testing.assert_array_equal(_dense(adata), TINY_COUNTS.T)

    def test_gzipped_csv(self, tmp_path):
        path = write_count_table(
            tmp_path / "counts.csv.gz", TINY_COUNTS, TINY_GENES, TINY_BARCODES
        )
        adata = read_count_table(path)
        np.testing.assert_array_equal(_dense(adata), TINY_COUNTS.T)

    def test_non_numeric_columns_dropped(self, tmp_path):
        df = pd.DataFrame(TINY_COUNTS, index=TINY_GENES, columns=TINY_BARCODES)
        df["symbol"] = ["A", "B", "C", "D"]
        path = tmp_path / "counts.csv"
        df.to_csv(path)

        adata = read_count_table(path)
        assert list(adata.obs_names) == TINY_BARCODES

    def test_no_numeric_columns(self, tmp_path):
        path = tmp_path / "counts.csv"
        pd.DataFrame({"symbol": ["A", "B"]}, index=["g0", "g1"]).to_csv(path)
        with pytest.raises(ValueError, match="No numeric"):
            read_count_table(path)

    def test_missing_values_become_zero(self, tmp_path):
        path = tmp_path / "counts.csv"
        path.write_text("gene,c0,c1\ng0,1,\ng1,2,3\n")
        adata = read_count_table(path)
        np.testing.assert_array_equal(_dense(adata), [[1, 2], [0, 3]])


# ===============================================================================
# Thresholds and labels
# ===============================================================================


@pytest.mark.unit
class TestCreateExpressionMatrix:
    def test_no_filtering(self, tiny_adata):
        result = create_expression_matrix(tiny_adata, "P", min_cells=0, min_features=0)
        assert result.shape == (3, 4)
        assert list(result.obs["project"].unique()) == ["P"]

    def test_min_features_is_inclusive(self, tiny_adata):
        # cells express 2, 2 and 4 genes
        result = create_expression_matrix(tiny_adata, "P", min_cells=0, min_features=4)
        assert list(result.obs_names) == ["c2"]
        assert result.n_vars == 4

        result = create_expression_matrix(tiny_adata, "P", min_cells=0, min_features=3)
        assert list(result.obs_names) == ["c2"]

    def test_min_cells_is_inclusive(self, tiny_adata):
        # genes are detected in 3, 2, 2 and 1 cells
        result = create_expression_matrix(tiny_adata, "P", min_cells=2, min_features=0)
        assert list(result.var_names) == ["g0", "g1", "g2"]
        assert result.n_obs == 3

    def test_cells_filtered_before_genes(self, tiny_adata):
        # with c0 and c1 gone, every gene is detected in one cell only
        result = create_expression_matrix(tiny_adata, "P", min_cells=2, min_features=3)
        assert result.n_obs == 1
        assert result.n_vars == 0

    def test_both_thresholds(self, tiny_adata):
        result = create_expression_matrix(tiny_adata, "P", min_cells=3, min_features=2)
        assert list(result.var_names) == ["g0"]
        assert result.n_obs == 3

    def test_input_not_modified(self, tiny_adata):
        create_expression_matrix(tiny_adata, "P", min_cells=3, min_features=4)
        assert tiny_adata.shape == (3, 4)
        assert "project" not in tiny_adata.obs

    def test_qc_columns(self, tiny_adata):
        result = create_expression_matrix(tiny_adata, "P", min_cells=0, min_features=0)
        assert list(result.obs["n_counts"]) == [2.0, 3.0, 9.0]
        assert list(result.obs["n_genes"]) == [2, 2, 4]

    def test_everything_filtered(self, tiny_adata):
        result = create_expression_matrix(tiny_adata, "P", min_cells=0, min_features=5)
        assert result.n_obs == 0

    def test_negative_threshold(self, tiny_adata):
        with pytest.raises(ValueError):
            create_expression_matrix(tiny_adata, "P", min_cells=-1, min_features=0)

    def test_standard_thresholds_on_dense_data(self):
        # Poisson(2) over 400 genes: every cell expresses well over 200 genes
        counts = generate_counts(config=STANDARD_DATASET_CONFIG)
        adata = anndata.AnnData(X=sparse.csr_matrix(counts.T.astype(np.float32)))
        result = create_expression_matrix(adata, "GSE1", min_cells=3, min_features=200)
        assert result.n_obs == STANDARD_DATASET_CONFIG.default_cell_count
        assert result.n_vars == STANDARD_DATASET_CONFIG.default_gene_count


# ===============================================================================
# ExpressionMatrix
# ===============================================================================


@pytest.mark.unit
class TestExpressionMatrix:
    @pytest.fixture
    def matrix(self, tiny_adata) -> ExpressionMatrix:
        provenance = ProvenanceRecord(
            source_files={"counts": "/d/counts.csv"},
            tool_version="1.0",
            label="P",
            min_cells=0,
            min_features=0,
        )
        return ExpressionMatrix(adata=tiny_adata, provenance=provenance)

    def test_genes_by_cells_view(self, matrix):
        assert matrix.n_genes == 4
        assert matrix.n_cells == 3
        assert matrix.shape == (4, 3)
        assert matrix.label == "P"

    def test_to_anndata_carries_provenance(self, matrix):
        adata = matrix.to_anndata()
        assert adata.uns[PROVENANCE_KEY]["label"] == "P"
        assert PROVENANCE_KEY not in matrix.adata.uns

    def test_repr(self, matrix):
        assert repr(matrix) == "ExpressionMatrix(label='P', 4 genes x 3 cells)"

    def test_h5ad_round_trip(self, matrix, tmp_path):
        path = tmp_path / "out.h5ad"
        matrix.to_anndata().write_h5ad(path)
        loaded = anndata.read_h5ad(path)
        assert loaded.uns[PROVENANCE_KEY]["tool_version"] == "1.0"
        assert loaded.shape == (3, 4)
