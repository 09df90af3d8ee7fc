# analysis - reports computed over a built CFG
