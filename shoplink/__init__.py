"""电商商品链接解析."""
