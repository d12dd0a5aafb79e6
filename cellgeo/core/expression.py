"""
Expression-matrix construction on top of scanpy/anndata.

This module is the matrix-construction layer of the pipeline:

- read_10x_directory(): load a staged matrix/barcodes/features directory
- read_count_table(): load a genes x cells delimited count table
- create_expression_matrix(): apply cell/gene thresholds and the project label

It also defines ExpressionMatrix, the result type handed back to callers.
"""

import gzip
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

import anndata
import numpy as np
import pandas as pd
import scanpy as sc
from scipy import sparse
from scipy.io import mmread

from cellgeo.core.provenance import ProvenanceRecord
from cellgeo.utils.logger import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]

# Staged file names, without compression suffix
MATRIX_FILENAME = "matrix.mtx"
BARCODES_FILENAME = "barcodes.tsv"
FEATURES_FILENAME = "features.tsv"
LEGACY_FEATURES_FILENAME = "genes.tsv"

PROVENANCE_KEY = "cellgeo"


@dataclass
class ExpressionMatrix:
    """
    A filtered, labeled count matrix and the record of how it was built.

    The AnnData is cells x genes (scanpy convention); n_genes/n_cells and
    shape report the genes x cells view.
    """

    adata: anndata.AnnData
    provenance: ProvenanceRecord

    @property
    def n_genes(self) -> int:
        return self.adata.n_vars

    @property
    def n_cells(self) -> int:
        return self.adata.n_obs

    @property
    def shape(self) -> Tuple[int, int]:
        """(genes, cells)"""
        return self.n_genes, self.n_cells

    @property
    def label(self) -> str:
        return self.provenance.label

    def to_anndata(self) -> anndata.AnnData:
        """Return a copy of the AnnData with the provenance stored in uns."""
        adata = self.adata.copy()
        adata.uns[PROVENANCE_KEY] = self.provenance.to_dict()
        return adata

    def __repr__(self):
        return (
            f"ExpressionMatrix(label={self.label!r}, "
            f"{self.n_genes} genes x {self.n_cells} cells)"
        )


def _open_text(path: Path):
    if path.name.endswith(".gz"):
        return gzip.open(path, "rt")
    return open(path, "r")


def _find_staged_file(directory: Path, *names: str) -> Optional[Path]:
    """Return the first existing name, compressed form first."""
    for name in names:
        for candidate in (directory / f"{name}.gz", directory / name):
            if candidate.exists():
                return candidate
    return None


def count_feature_columns(features_path: PathLike) -> int:
    """
    Count tab-separated columns on the first line of a features/genes file.

    Args:
        features_path: Path to features/genes file (compressed or uncompressed)

    Returns:
        int: Number of columns (0 for an empty file)
    """
    with _open_text(Path(features_path)) as f:
        first_line = f.readline().rstrip("\n")
    if not first_line.strip():
        return 0
    return first_line.count("\t") + 1


def _read_first_column(path: Path) -> list:
    with _open_text(path) as f:
        return [line.strip().split("\t")[0] for line in f if line.strip()]


def _load_10x_manual(
    matrix_path: Path, barcodes_path: Path, features_path: Path
) -> anndata.AnnData:
    """
    Load a 10X trio with scipy when scanpy's reader cannot be used.

    Handles mixed compression and 1- or 2-column features files, which
    sc.read_10x_mtx() rejects.
    """
    logger.debug(f"Loading matrix from {matrix_path.name}")
    if matrix_path.name.endswith(".gz"):
        with gzip.open(matrix_path, "rb") as f:
            X = mmread(f)
    else:
        X = mmread(matrix_path)
    # MTX is genes x cells; AnnData wants cells x genes
    X = sparse.csr_matrix(X.T, dtype=np.float32)

    barcodes = _read_first_column(barcodes_path)

    with _open_text(features_path) as f:
        rows = [line.rstrip("\n").split("\t") for line in f if line.strip()]
    gene_ids = [row[0] for row in rows]
    gene_names = [row[1] if len(row) > 1 else row[0] for row in rows]
    feature_types = [row[2] if len(row) > 2 else "Gene Expression" for row in rows]

    if X.shape[0] != len(barcodes):
        raise ValueError(
            f"Dimension mismatch: matrix has {X.shape[0]} cells but {len(barcodes)} barcodes"
        )
    if X.shape[1] != len(gene_names):
        raise ValueError(
            f"Dimension mismatch: matrix has {X.shape[1]} genes but {len(gene_names)} features"
        )

    var = pd.DataFrame(
        {"gene_ids": gene_ids, "feature_types": feature_types}, index=gene_names
    )
    adata = anndata.AnnData(X=X, obs=pd.DataFrame(index=barcodes), var=var)
    adata.var_names_make_unique()
    adata.obs_names_make_unique()
    return adata


def read_10x_directory(directory: PathLike) -> anndata.AnnData:
    """
    Load a staged 10X directory into AnnData (cells x genes).

    Uses sc.read_10x_mtx() for the standard CellRanger v3 layout (all files
    gzipped, 3-column features). Anything else, such as mixed compression
    or 1-2 column features files, goes through a scipy reader.

    Args:
        directory: Directory holding matrix.mtx[.gz], barcodes.tsv[.gz] and
            features.tsv[.gz] (or genes.tsv[.gz])

    Returns:
        anndata.AnnData: Raw counts

    Raises:
        FileNotFoundError: If one of the three files is missing
        ValueError: If the files disagree on dimensions
    """
    directory = Path(directory)
    matrix_path = _find_staged_file(directory, MATRIX_FILENAME)
    barcodes_path = _find_staged_file(directory, BARCODES_FILENAME)
    features_path = _find_staged_file(
        directory, FEATURES_FILENAME, LEGACY_FEATURES_FILENAME
    )

    if not (matrix_path and barcodes_path and features_path):
        raise FileNotFoundError(
            f"Could not find complete 10X trio in {directory}. "
            f"Matrix: {matrix_path}, Barcodes: {barcodes_path}, Features: {features_path}"
        )

    n_cols = count_feature_columns(features_path)
    all_gzipped = all(
        p.name.endswith(".gz") for p in (matrix_path, barcodes_path, features_path)
    )

    if all_gzipped and features_path.name.startswith(FEATURES_FILENAME) and n_cols >= 3:
        logger.debug("Using scanpy loader for standard 10X v3 layout")
        # gex_only=False keeps antibody capture and other feature types, as the
        # scipy reader does
        adata = sc.read_10x_mtx(
            directory, var_names="gene_symbols", cache=False, gex_only=False
        )
    else:
        logger.debug(
            f"Using manual 10X loader (features columns: {n_cols}, all gzipped: {all_gzipped})"
        )
        adata = _load_10x_manual(matrix_path, barcodes_path, features_path)

    logger.info(f"Loaded count matrix: {adata.n_vars} genes x {adata.n_obs} cells")
    return adata


def read_count_table(path: PathLike) -> anndata.AnnData:
    """
    Load a delimited count table with genes as rows and cells as columns.

    The first column holds gene identifiers and the first row cell
    identifiers. Compression is inferred from the file suffix.

    Args:
        path: Path to the .csv/.csv.gz table

    Returns:
        anndata.AnnData: Sparse raw counts, cells x genes
    """
    path = Path(path)
    sep = "\t" if ".tsv" in path.name.lower() or ".txt" in path.name.lower() else ","

    df = pd.read_csv(path, sep=sep, index_col=0, compression="infer")
    logger.info(f"Loaded count table from {path.name}: shape {df.shape}")

    numeric_df = df.select_dtypes(include=[np.number])
    if numeric_df.shape[1] != df.shape[1]:
        logger.warning(
            f"Dropping {df.shape[1] - numeric_df.shape[1]} non-numeric columns"
        )
        df = numeric_df
    if df.shape[1] == 0:
        raise ValueError(f"No numeric count columns found in {path.name}")

    if df.isna().any().any():
        logger.warning("Count table contains missing values; treating them as 0")
        df = df.fillna(0)

    X = sparse.csr_matrix(df.to_numpy(dtype=np.float32).T)
    adata = anndata.AnnData(
        X=X,
        obs=pd.DataFrame(index=df.columns.astype(str)),
        var=pd.DataFrame(index=df.index.astype(str)),
    )
    adata.var_names_make_unique()
    adata.obs_names_make_unique()
    return adata


def create_expression_matrix(
    adata: anndata.AnnData, label: str, min_cells: int, min_features: int
) -> anndata.AnnData:
    """
    Filter raw counts and tag cells with a project label.

    Cells expressing fewer than min_features genes are removed first, then
    genes detected in fewer than min_cells of the remaining cells. Both
    thresholds are inclusive; 0 disables the corresponding filter.

    Args:
        adata: Raw counts, cells x genes (not modified)
        label: Project label stored in obs["project"]
        min_cells: Minimum number of cells a gene must be detected in
        min_features: Minimum number of genes a cell must express

    Returns:
        anndata.AnnData: Filtered copy with obs["project"], obs["n_counts"]
        and obs["n_genes"]
    """
    if min_cells < 0 or min_features < 0:
        raise ValueError(
            f"min_cells and min_features must be >= 0, got {min_cells} and {min_features}"
        )

    adata = adata.copy()
    n_genes_raw, n_cells_raw = adata.n_vars, adata.n_obs

    if min_features > 0:
        sc.pp.filter_cells(adata, min_genes=min_features)
    if min_cells > 0:
        sc.pp.filter_genes(adata, min_cells=min_cells)

    X = adata.X
    adata.obs["n_counts"] = np.asarray(X.sum(axis=1)).ravel()
    adata.obs["n_genes"] = np.asarray((X > 0).sum(axis=1)).ravel()
    adata.obs["project"] = pd.Categorical([label] * adata.n_obs)

    logger.info(
        f"{label}: kept {adata.n_vars}/{n_genes_raw} genes and "
        f"{adata.n_obs}/{n_cells_raw} cells "
        f"(min_cells={min_cells}, min_features={min_features})"
    )
    if adata.n_obs == 0 or adata.n_vars == 0:
        logger.warning(f"{label}: no cells or genes left after filtering")

    return adata
