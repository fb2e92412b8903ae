"""Synthetic result tables shared by the test suite.

Layout of the synthetic phylogeny (internal node names in brackets):

    root
    |-- [n3]  c0 c1 c2
    |-- [n2]
    |    |-- [n5] c3 c4
    |    `-- [n6] c5 c6 c7
    `-- [n4]  c8 c9 c10 c11

Mutations: n2 carries site 2a (LLR 50), n5 carries 5a (LLR 30),
n6 carries 7b (LLR 20), n4 carries 1a (LLR 10).
"""

from pathlib import Path

import anndata as ad
import numpy as np
import pandas as pd


CELLS = [f"c{i}" for i in range(12)]
CLONE_OF_CELL = {c: ("2" if c in {"c3", "c4", "c5", "c6", "c7"} else "1") for c in CELLS}

NEWICK = "((c0:1,c1:1,c2:1)n3:1,((c3:1,c4:1)n5:1,(c5:1,c6:1,c7:1)n6:1)n2:1,(c8:1,c9:1,c10:1,c11:1)n4:1)root;"


def make_joint_post() -> pd.DataFrame:
    rows = []
    for i, cell in enumerate(CELLS):
        tumor = CLONE_OF_CELL[cell] == "2"
        rows.append(
            {
                "cell": cell,
                "CHROM": "1",
                "seg": "1a",
                "seg_start": 1_000_000,
                "seg_end": 5_000_000,
                "cnv_state": "amp",
                "p_cnv": 0.95 if tumor else 0.1,
            }
        )
        rows.append(
            {
                "cell": cell,
                "CHROM": "2",
                "seg": "2a",
                "seg_start": 2_000_000,
                "seg_end": 8_000_000,
                "cnv_state": "del",
                "p_cnv": 0.99 if tumor else 0.05 + 0.01 * i,
            }
        )
        rows.append(
            {
                "cell": cell,
                "CHROM": "chr3",
                "seg": "3a",
                "seg_start": 500_000,
                "seg_end": 9_000_000,
                "cnv_state": "neu",
                "p_cnv": 0.0,
            }
        )
    return pd.DataFrame(rows)


def make_clone_post() -> pd.DataFrame:
    p_cnv = [0.97 if CLONE_OF_CELL[c] == "2" else 0.1 for c in CELLS]
    p_2 = np.array([0.9 if CLONE_OF_CELL[c] == "2" else 0.2 for c in CELLS])
    return pd.DataFrame(
        {
            "cell": CELLS,
            "clone_opt": [int(CLONE_OF_CELL[c]) for c in CELLS],
            "p_cnv": p_cnv,
            "compartment_opt": ["tumor" if CLONE_OF_CELL[c] == "2" else "normal" for c in CELLS],
            "p_1": 1 - p_2,
            "p_2": p_2,
        }
    )


def make_bulk_clones() -> pd.DataFrame:
    rows = []
    rng = np.random.default_rng(0)
    for sample in ("1", "2"):
        snp_index = 0
        for chrom, n_snps in ((1, 20), (2, 20), (3, 10)):
            for j in range(n_snps):
                is_del = sample == "2" and chrom == 2
                rows.append(
                    {
                        "sample": sample,
                        "CHROM": chrom,
                        "POS": 100_000 * (j + 1),
                        "snp_index": snp_index,
                        "cnv_state_post": "del" if is_del else "neu",
                        "logFC": (-0.8 if is_del else 0.0) + rng.normal(0, 0.1),
                        "pBAF": 0.9 if is_del else 0.5 + rng.normal(0, 0.05),
                        "LLR": 40.0 if is_del else np.nan,
                    }
                )
                snp_index += 1
    return pd.DataFrame(rows)


def make_segs_consensus() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "CHROM": [1, 2, 3],
            "seg": ["1a", "2a", "3a"],
            "seg_start": [1_000_000, 2_000_000, 500_000],
            "seg_end": [5_000_000, 8_000_000, 9_000_000],
            "cnv_state": ["amp", "del", "neu"],
            "LLR": [12.0, 80.0, np.nan],
        }
    )


def make_tree_mutations() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "node": ["n2", "n5", "n6", "n4"],
            "site": ["2a", "5a", "7b", "1a"],
            "LLR": [50.0, 30.0, 20.0, 10.0],
        }
    )


def make_embedding() -> pd.DataFrame:
    rng = np.random.default_rng(1)
    coords = rng.normal(size=(len(CELLS) + 2, 2))
    return pd.DataFrame(
        {
            "cell": CELLS + ["unassigned_1", "unassigned_2"],
            "UMAP_1": coords[:, 0],
            "UMAP_2": coords[:, 1],
        }
    )


def write_results_dir(out: Path) -> Path:
    """Write two result iterations; only the second carries tree, mutations and history."""
    out.mkdir(parents=True, exist_ok=True)
    for i in (1, 2):
        make_joint_post().to_csv(out / f"joint_post_{i}.tsv", sep="\t", index=False)
        make_clone_post().to_csv(out / f"clone_post_{i}.tsv", sep="\t", index=False)
        make_segs_consensus().to_csv(out / f"segs_consensus_{i}.tsv", sep="\t", index=False)
    make_bulk_clones().to_csv(out / "bulk_clones_final.tsv.gz", sep="\t", index=False)
    (out / "tree_final_2.newick").write_text(NEWICK)
    make_tree_mutations().to_csv(out / "tree_mutations_2.tsv", sep="\t", index=False)
    pd.DataFrame({"from": ["1"], "to": ["2"], "label": ["2a"], "n_cells": [5]}).to_csv(
        out / "mut_graph_2.tsv", sep="\t", index=False
    )
    return out


def create_temp_h5ad_file(temp_dir: Path, key: str = "X_umap") -> Path:
    """Write the synthetic embedding as an AnnData file with coordinates in obsm[key]."""
    emb = make_embedding()
    adata = ad.AnnData(
        X=np.zeros((len(emb), 1), dtype=np.float32),
        obs=pd.DataFrame(index=emb["cell"].to_numpy()),
    )
    adata.obsm[key] = emb[["UMAP_1", "UMAP_2"]].to_numpy()
    path = Path(temp_dir) / "embedding.h5ad"
    path.parent.mkdir(parents=True, exist_ok=True)
    adata.write_h5ad(path)
    return path
