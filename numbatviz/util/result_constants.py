# File names written by the CNV caller into its output directory.
# "{i}" is the iteration number of the clone/phylogeny refinement loop.
JOINT_POST_FILE = "joint_post_{i}.tsv"
CLONE_POST_FILE = "clone_post_{i}.tsv"
SEGS_CONSENSUS_FILE = "segs_consensus_{i}.tsv"
TREE_FILE = "tree_final_{i}.newick"
TREE_MUTATIONS_FILE = "tree_mutations_{i}.tsv"
MUT_GRAPH_FILE = "mut_graph_{i}.tsv"
BULK_CLONES_FILE = "bulk_clones_final.tsv.gz"

# Files written by numbatviz
FIGURES_MANIFEST_FILE = "figures_manifest.json"
CLONE_ASSIGNMENT_FILE = "tree_clones.tsv"

DEFAULT_CACHE_DIR_NAME = ".numbatviz_cache"

JOINT_POST_COLUMNS = ["cell", "CHROM", "seg", "seg_start", "seg_end", "cnv_state", "p_cnv"]
CLONE_POST_COLUMNS = ["cell", "clone_opt", "p_cnv"]
BULK_CLONES_COLUMNS = ["sample", "CHROM", "snp_index", "cnv_state_post", "logFC", "pBAF"]
SEGS_CONSENSUS_COLUMNS = ["CHROM", "seg", "seg_start", "seg_end", "cnv_state"]
TREE_MUTATIONS_COLUMNS = ["node", "site", "LLR"]
MUT_GRAPH_COLUMNS = ["from", "to"]

EMBEDDING_COLUMNS = ["UMAP_1", "UMAP_2"]
