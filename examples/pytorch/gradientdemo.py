# Differentiates x*y + x/y and x*y - x/y at x=8, y=4 using torch.Tensor()
# This code is to be used as comparison with examples/gradgraph/gradientdemo.py

import torch

if __name__ == "__main__":
    for name, fn in (("Add", lambda a, b: a * b + a / b), ("Sub", lambda a, b: a * b - a / b)):
        x = torch.tensor(8.0, dtype=torch.float32, requires_grad=True)
        y = torch.tensor(4.0, dtype=torch.float32, requires_grad=True)
        out = fn(x, y)
        out.backward()
        print(f"{name}: value={out.item()}, d/dx={x.grad.item()}, d/dy={y.grad.item()}")
