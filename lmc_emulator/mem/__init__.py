# LMC memory
