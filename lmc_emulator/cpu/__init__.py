# LMC CPU core: registers, decoder, ALU
